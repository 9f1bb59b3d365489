from __future__ import annotations

from .helpers import *  # noqa: F401,F403
from .components import *  # noqa: F401,F403
from .code_folding import *  # noqa: F401,F403
from .editor import *  # noqa: F401,F403


__all__ = [name for name in globals() if not name.startswith("__")]
