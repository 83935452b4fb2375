"""MongoDB engine."""

from dbctl.engines.mongodb.manager import MongoDBManager

__all__ = ["MongoDBManager"]
