import logging
from sys import modules

import sentry_sdk
from pydantic import Field
from sentry_sdk.integrations.pure_eval import PureEvalIntegration

from avatars.config import ENV, VERSION
from avatars.lib.pydantic_settings_integration import pydantic_settings_integration

SENTRY_DSN = ''

SENTRY_TRACES_SAMPLE_RATE: float = Field(0.1, ge=0, le=1)

pydantic_settings_integration(
    __name__, globals(), name_filter=lambda name: name.startswith('SENTRY_')
)

if SENTRY_DSN and 'pytest' not in modules:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        release=VERSION,
        environment=ENV,
        integrations=[PureEvalIntegration()],
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
    )
    logging.debug('Initialized Sentry SDK')
