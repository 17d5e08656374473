import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    DROPBOX_ACCESS_TOKEN = os.getenv("DROPBOX_ACCESS_TOKEN")
    DATA_FOLDER = os.getenv("DATA_FOLDER", "/legal-case-data")
    DROPBOX_TIMEOUT = float(os.getenv("DROPBOX_TIMEOUT", "30"))
    WRITE_RETRIES = int(os.getenv("WRITE_RETRIES", "3"))

    CORS_ORIGINS = "*"
    CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


class DevConfig(Config):
    DEBUG = True


class ProdConfig(Config):
    DEBUG = False
