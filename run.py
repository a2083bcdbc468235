#!/usr/bin/env python3
"""
Roadside Rescue Backend - Main application entry point
"""
from roadside import create_app
from roadside.extensions import socketio
import os

app = create_app()

if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('DEBUG', 'True').lower() == 'true'

    socketio.run(
        app,
        host='0.0.0.0',
        port=port,
        debug=debug,
        allow_unsafe_werkzeug=debug,
    )
