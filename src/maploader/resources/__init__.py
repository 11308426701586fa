"""
Resources for maploader.

Provides helpers to access packaged assets such as the plugin-loader
runtime script.
"""

from functools import lru_cache
from importlib import resources as importlib_resources

MOD_RUNTIME_SCRIPT = "mod_runtime.js"


@lru_cache(maxsize=1)
def get_mod_runtime_script() -> str:
    """Return the static part of the generated ``index.js``.

    Uses importlib.resources to resolve the packaged script.
    """
    return (
        importlib_resources.files(__name__)
        .joinpath(MOD_RUNTIME_SCRIPT)
        .read_text(encoding="utf-8")
    )
