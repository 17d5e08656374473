import os

from case_store import create_app
from case_store.config import DevConfig, ProdConfig

env = os.getenv("CASE_STORE_ENV", "development").strip().lower()
app = create_app(ProdConfig if env == "production" else DevConfig)

if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "5003"))
    app.run(host=host, port=port, debug=app.config["DEBUG"])
