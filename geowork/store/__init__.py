from .provider import ArchiveSession, CreateSession, SessionStore, UpdateSession, Write

__all__ = ["ArchiveSession", "CreateSession", "SessionStore", "UpdateSession", "Write"]
