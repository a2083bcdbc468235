"""
Socket.IO event handlers for real-time features.
- Committed row changes pushed to request rooms and the admin room
- Live tracking sessions with proximity alerts
- Provider availability and GPS streaming
"""
import logging
import threading

from flask import request
from flask_socketio import emit, join_room, leave_room

from roadside import db
from roadside.auth import decode_token
from roadside.commands import execute
from roadside.errors import AuthenticationError, PermissionDenied, RescueError
from roadside.extensions import socketio, feed
from roadside.models import User
from roadside.services import availability
from roadside.services.lifecycle import lookup_request
from roadside.services.queries import can_view
from roadside.tracking import TrackingSession

logger = logging.getLogger(__name__)

ADMIN_ROOM = "admin"

REALTIME_TABLES = ("service_requests", "profiles", "transactions", "ratings")

# sid -> user id (None for guests)
_connections = {}
# sid -> {request_id: TrackingSession}
_tracking = {}
# sid -> provider id with a location watch opened from that socket
_provider_sids = {}
_lock = threading.Lock()

_bridge_subscriptions = []


def request_room(request_id):
    return f"request:{request_id}"


def _room_for(change):
    row = change.row or {}
    if change.table == "service_requests":
        return request_room(row.get("id"))
    if change.table in ("transactions", "ratings") and row.get("service_request_id"):
        return request_room(row["service_request_id"])
    if change.table == "profiles" and row.get("user_id"):
        return f"user:{row['user_id']}"
    return None


def broadcast_change(change):
    """Push a committed change to the admin room and the room of the row it belongs to."""
    payload = change.to_dict()
    socketio.emit("db:change", payload, room=ADMIN_ROOM)
    room = _room_for(change)
    if room:
        socketio.emit("db:change", payload, room=room)


def install_bridge():
    """Subscribe the Socket.IO broadcaster to the change feed once."""
    if _bridge_subscriptions:
        return
    for table in REALTIME_TABLES:
        _bridge_subscriptions.append(feed.subscribe(table, broadcast_change))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _current_user():
    user_id = _connections.get(request.sid)
    return db.session.get(User, user_id) if user_id else None


def _emit_error(error):
    emit("error", error.to_dict(), room=request.sid)


def _emitter(sid):
    def _emit(event, payload):
        socketio.emit(event, payload, to=sid)
    return _emit


def _close_tracking(sid, request_id=None):
    with _lock:
        sessions = _tracking.get(sid, {})
        if request_id is None:
            closing = list(sessions.values())
            _tracking.pop(sid, None)
        else:
            session = sessions.pop(request_id, None)
            closing = [session] if session else []
    for session in closing:
        session.close()
    return len(closing)


# ---------------------------------------------------------------------------
# Connection lifecycle
# ---------------------------------------------------------------------------

@socketio.on("connect")
def handle_connect(auth=None):
    token = (auth or {}).get("token") or request.args.get("token")
    payload = decode_token(token) if token else None
    user_id = payload.get("user_id") if payload else None
    with _lock:
        _connections[request.sid] = user_id
    logger.debug("Client connected: %s (%s)", request.sid, user_id or "guest")


@socketio.on("disconnect")
def handle_disconnect(*args):
    sid = request.sid
    closed = _close_tracking(sid)
    with _lock:
        _connections.pop(sid, None)
        provider_id = _provider_sids.pop(sid, None)
    if provider_id:
        result = execute(availability.release_provider, provider_id)
        if not result.ok:
            logger.warning("Could not take provider %s offline: %s", provider_id, result.error.message)
    logger.debug("Client disconnected: %s (closed %d tracking sessions)", sid, closed)


# ---------------------------------------------------------------------------
# Rooms
# ---------------------------------------------------------------------------

@socketio.on("join")
def handle_join(data):
    """Join a request room. data = { request_id }"""
    user = _current_user()
    if not user:
        return _emit_error(AuthenticationError("Unauthorized", redirect="/auth"))

    service_request = lookup_request((data or {}).get("request_id"))
    if not service_request or not can_view(user, service_request):
        return _emit_error(PermissionDenied("You do not have access to this request",
                                            redirect=user.default_view))
    room = request_room(service_request.id)
    join_room(room)
    emit("joined", {"room": room}, room=request.sid)


@socketio.on("leave")
def handle_leave(data):
    request_id = (data or {}).get("request_id")
    if request_id:
        leave_room(request_room(request_id))


@socketio.on("admin:join")
def handle_admin_join(*args):
    """Admin clients join the admin room for live updates."""
    user = _current_user()
    if not user or not user.is_admin():
        return _emit_error(PermissionDenied("Admin access required",
                                            redirect=user.default_view if user else "/auth"))
    join_room(ADMIN_ROOM)
    emit("joined", {"room": ADMIN_ROOM}, room=request.sid)


@socketio.on("admin:leave")
def handle_admin_leave(*args):
    leave_room(ADMIN_ROOM)


# ---------------------------------------------------------------------------
# Live tracking
# ---------------------------------------------------------------------------

@socketio.on("tracking:join")
def handle_tracking_join(data):
    """
    Open a tracking session for a request.
    data = { code | request_id, permission: granted | denied | default }
    Anyone holding the tracking code may follow the request.
    """
    data = data or {}
    key = data.get("code") or data.get("request_id")
    service_request = lookup_request(key)
    if not service_request:
        return _emit_error(RescueError("Service request not found", redirect="/track-rescue"))

    sid = request.sid
    _close_tracking(sid, service_request.id)
    session = TrackingSession(
        service_request.row_dict(),
        feed,
        _emitter(sid),
        permission=data.get("permission", "default"),
    )
    with _lock:
        _tracking.setdefault(sid, {})[service_request.id] = session
    emit("tracking:joined", {"request_id": service_request.id}, room=sid)


@socketio.on("tracking:leave")
def handle_tracking_leave(data):
    request_id = (data or {}).get("request_id")
    _close_tracking(request.sid, request_id)


@socketio.on("tracking:permission")
def handle_tracking_permission(data):
    """Client reports its notification permission. data = { permission }"""
    permission = (data or {}).get("permission")
    with _lock:
        sessions = list(_tracking.get(request.sid, {}).values())
    try:
        for session in sessions:
            session.set_permission(permission)
    except ValueError as e:
        return _emit_error(RescueError(str(e)))


# ---------------------------------------------------------------------------
# Provider availability and GPS
# ---------------------------------------------------------------------------

def _run_for_provider(operation, *args):
    user = _current_user()
    if not user or not user.is_provider():
        _emit_error(PermissionDenied("Provider access required",
                                     redirect=user.default_view if user else "/auth"))
        return None
    result = execute(operation, user, *args)
    if not result.ok:
        _emit_error(result.error)
        return None
    return user, result.value


@socketio.on("provider:online")
def handle_provider_online(data):
    """data = { lat, lng }"""
    data = data or {}
    outcome = _run_for_provider(availability.go_online, data.get("lat"), data.get("lng"))
    if outcome:
        user, profile = outcome
        with _lock:
            _provider_sids[request.sid] = user.id
        join_room(f"user:{user.id}")
        emit("provider:status", {"is_available": True}, room=request.sid)


@socketio.on("provider:location")
def handle_provider_location(data):
    """GPS update from an online provider. data = { lat, lng }"""
    data = data or {}
    outcome = _run_for_provider(availability.push_location, data.get("lat"), data.get("lng"))
    if outcome:
        user, updated = outcome
        socketio.emit("admin:provider-location", {
            "provider_id": user.id,
            "lat": data.get("lat"),
            "lng": data.get("lng"),
            "active_requests": updated,
        }, room=ADMIN_ROOM)


@socketio.on("provider:offline")
def handle_provider_offline(*args):
    outcome = _run_for_provider(availability.go_offline)
    with _lock:
        _provider_sids.pop(request.sid, None)
    if outcome:
        emit("provider:status", {"is_available": False}, room=request.sid)
