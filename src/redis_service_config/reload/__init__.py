"""Hot-reload machinery: change analysis, cache, coordinator and file watcher.

Import the submodules directly; the coordinator depends on the loader, which depends on the
cache defined here.
"""
