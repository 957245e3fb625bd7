"""Data service interface and its ERMrest implementation.

Importing this package does not import deriva. Callers that talk to a catalog
import :mod:`deriva_duplicate.service.ermrest` directly.
"""

from deriva_duplicate.service.port import DataService

__all__ = ["DataService"]
