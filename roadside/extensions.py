"""
Shared extension instances, created here to avoid circular imports.
"""
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_socketio import SocketIO

from roadside.realtime import ChangeFeed

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["100 per minute"],
)

socketio = SocketIO()

feed = ChangeFeed()
