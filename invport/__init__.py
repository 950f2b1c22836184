"""
Invport inventory API.

Dealership inventory service backed by Azure SQL and Azure Blob Storage.
"""

__version__ = "1.0.0"
