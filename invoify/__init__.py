from .datastore import DataStore
from .config import InvoifyConfig, StorageConfig, BackupConfig

__version__ = "1.0.0"
__author__ = "Invoify Contributors"

__all__ = ["DataStore", "InvoifyConfig", "StorageConfig", "BackupConfig", "__version__"]
