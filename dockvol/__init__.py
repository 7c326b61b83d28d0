"""
dockvol package
- Discover docker volumes (container mounts + orphaned dirs on disk), then list, inspect, remove, export and import them.
"""
__all__ = ["cli", "config", "orchestrator", "discover", "registry", "shim", "transfer", "archiver", "engine", "errors", "util", "types", "bundle"]
__version__ = "1.2.0"
