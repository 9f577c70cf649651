"""
sn-dotfiles - keep local dotfiles in sync with an encrypted, tagged note store.

Tracked files are stored as notes grouped under a reserved root tag, with
nested tags mirroring the directory structure below the home directory.
Each invocation performs a single synchronous reconciliation pass.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sn-dotfiles")
except PackageNotFoundError:
    __version__ = "0.3.0"
