"""
plugintools - A pluggable tool-execution service.

One process exposes heterogeneous capabilities behind a single
request/response contract, so a caller can discover tools, read their
parameter schemas and invoke them generically.
It provides:
- A concurrent-safe tool registry
- A validate-then-invoke dispatch protocol
- Built-in tools: file-manager, shell-executor, scheduler
- An HTTP boundary and a command-line interface

Example usage:
    $ plugintools serve --config config.yaml
    $ plugintools tools --config config.yaml
    $ plugintools call shell-executor --config config.yaml -p command="echo hi"
"""

__version__ = "0.1.0"
__author__ = "plugintools Contributors"

__all__ = [
    "__version__",
    "__author__",
]
