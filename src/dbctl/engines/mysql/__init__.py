"""MySQL family engines."""

from dbctl.engines.mysql.manager import MySQLManager, WeSQLManager

__all__ = ["MySQLManager", "WeSQLManager"]
