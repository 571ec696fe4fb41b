from .file_store import FileStore

__all__ = ["FileStore"]
