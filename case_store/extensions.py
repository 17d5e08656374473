# case_store/extensions.py
from flask_cors import CORS

from .config import Config
from .services.dropbox_client import DropboxClient
from .storage.collection_store import CollectionStore

# CORS is a real Flask extension (keeps init_app)
cors = CORS()

dropbox_client = DropboxClient(
    access_token=Config.DROPBOX_ACCESS_TOKEN,
    timeout=Config.DROPBOX_TIMEOUT,
)

store = CollectionStore(
    dropbox_client,
    root=Config.DATA_FOLDER,
    retries=Config.WRITE_RETRIES,
)
