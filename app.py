"""
WSGI entry point.

Gunicorn serves ``app:application``; running this file starts the Flask
development server instead.
"""

import os

from dealership import create_app

application = create_app(os.getenv('FLASK_ENV'))

# WSGI application export for production deployment
app = application


if __name__ == '__main__':
    host = os.getenv('FLASK_HOST', '127.0.0.1')
    port = int(os.getenv('FLASK_PORT', '5000'))
    application.run(host=host, port=port, debug=application.config.get('DEBUG', False))
