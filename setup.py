import os
from pathlib import Path

from setuptools import Extension, setup

# Compiled modules are opt-in: AVATARS_CYTHONIZE=1 pip install .
if os.getenv('AVATARS_CYTHONIZE') == '1':
    import Cython.Compiler.Options as Options
    from Cython.Build import cythonize

    Options.docstrings = False

    dirs = (
        'avatars/lib',
        'avatars/middlewares',
        'avatars/services',
    )

    blacklist: dict[str, set[str]] = {
        'avatars/lib': {
            'pydantic_settings_integration.py',
            'sentry.py',
        }
    }

    paths = []
    for dir in dirs:
        dir_blacklist = blacklist.get(dir, set())
        for p in Path(dir).rglob('*.py'):
            if p.name not in dir_blacklist:
                paths.append(p)  # noqa: PERF401

    ext_modules = cythonize(
        [
            Extension(
                path.with_suffix('').as_posix().replace('/', '.'),
                [str(path)],
                extra_compile_args=[
                    '-mtune=generic',
                    '-fhardened',
                ],
            )
            for path in paths
        ],
        nthreads=os.cpu_count(),
        compiler_directives={
            # https://cython.readthedocs.io/en/latest/src/userguide/source_files_and_compilation.html#compiler-directives
            'overflowcheck': True,
            'language_level': 3,
        },
    )
else:
    ext_modules = []

setup(ext_modules=ext_modules)
