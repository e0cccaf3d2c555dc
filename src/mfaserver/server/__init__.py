"""Server entry points: programmatic gunicorn runner and WSGI module."""
