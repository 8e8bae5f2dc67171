from .records import DCValue, RecordKind
from .dclib import ItemBundle, DublinCoreFile, clean_value, folder_name
from .database import Database
from .config import ExportConfig, load_config
from .export import Exporter
