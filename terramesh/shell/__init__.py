from .app import MeshShell

__all__ = ["MeshShell"]
