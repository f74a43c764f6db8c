#!/usr/bin/env python3
"""
Simple runner for the Boundary Data Explorer
Picks a free port and runs the Flask development server without the reloader
"""

import os

# Ensure Werkzeug reloader env isn't forced; we'll disable it explicitly
os.environ.pop('WERKZEUG_RUN_MAIN', None)

# Ensure Flask debug is off
os.environ.pop('FLASK_DEBUG', None)
# Relax CSP for local development
os.environ.setdefault('RELAXED_CSP', 'true')

# Import and run the app
from app import create_app
from config import Config


def choose_port(preferred: int = 5001, attempts: int = 20) -> int:
    """Return a free TCP port on localhost, preferring `preferred`."""
    import socket
    for offset in range(attempts):
        port = preferred + offset
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                s.bind(("127.0.0.1", port))
                return port
            except OSError:
                continue
    return preferred


if __name__ == '__main__':
    print("=" * 60)
    print("BOUNDARY DATA EXPLORER - STARTING SERVER")
    print("=" * 60)

    flask_app = create_app()
    port = choose_port(Config.PORT)

    print(f"\nServer starting on http://localhost:{port}")
    print(f"Geo API: {Config.GEO_API_URL}")
    print(f"Base map: {'Mapbox ' + Config.MAPBOX_STYLE if Config.MAPBOX_TOKEN else 'CartoDB Positron'}")
    print("\nPress Ctrl+C to stop the server")
    print("=" * 60)

    flask_app.run(host='127.0.0.1', port=port, debug=False, use_reloader=False, threaded=True)
