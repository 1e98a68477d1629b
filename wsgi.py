from deploy_logger import create_app

app = create_app()

# gunicorn: gunicorn -w 1 wsgi:app
# Writes are serialized per process; run a single worker against one database.
