import logging
from collections.abc import Callable
from sys import modules
from typing import Any, get_type_hints

from pydantic import create_model
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CONFIG = SettingsConfigDict(
    env_prefix='AVATARS_',
    env_file='.env',
    extra='ignore',
)


def _is_setting_name(name: str) -> bool:
    return name[:1] != '_' and name.isupper()


def pydantic_settings_integration(
    caller_name: str,
    caller_globals: dict[str, Any],
    /,
    config: SettingsConfigDict = _DEFAULT_CONFIG,
    name_filter: Callable[[str], bool] = _is_setting_name,
) -> None:
    """
    Override the upper-case globals of a config module from the environment.

    A BaseSettings model is created on the fly from the module globals (their
    annotations, or the type of their default value), populated from
    AVATARS_-prefixed environment variables and the .env file, and the
    validated values are written back into the module.
    """
    settings = {k: v for k, v in caller_globals.items() if name_filter(k)}
    if not settings:
        logging.warning('No settings found in %s matching the filter', caller_name)
        return

    type_hints = get_type_hints(modules[caller_name], caller_globals)
    fields: dict[str, tuple[Any, Any]] = {}
    for name, value in settings.items():
        annotation = type_hints.get(name)
        if annotation is None:
            annotation = Any if isinstance(value, FieldInfo) else type(value)
        fields[name] = (annotation, value)

    base = type(
        f'{caller_name}_BaseSettings',
        (BaseSettings,),
        {'model_config': config},
    )
    model = create_model(f'{caller_name}_Settings', __base__=base, **fields)()  # type: ignore

    for name in settings:
        caller_globals[name] = getattr(model, name)
