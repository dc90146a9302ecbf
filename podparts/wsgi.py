"""WSGI entrypoint for running the podparts console with Gunicorn."""

from podparts.config import load_config
from podparts.factory import create_app

app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=load_config().FLASK_DEBUG)
