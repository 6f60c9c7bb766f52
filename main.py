# Entry point: python main.py
import os

# async_mode is 'eventlet' for production (gunicorn with eventlet worker)
# Falls back to 'threading' in development if eventlet is not available
try:
    import eventlet
    eventlet.monkey_patch()
    os.environ.setdefault("SOCKETIO_ASYNC_MODE", "eventlet")
except ImportError:
    os.environ.setdefault("SOCKETIO_ASYNC_MODE", "threading")

from server import create_app  # noqa: E402

app = create_app()
socketio = app.extensions["socketio"]


if __name__ == "__main__":
    host = "0.0.0.0"
    port = app.config["FLASK_PORT"]
    print(f"\n{'='*60}")
    print(f"Server running: http://localhost:{port}")
    print(f"Messages API:   http://localhost:{port}/api/messages")
    print(f"Socket.IO:      ws://localhost:{port}/socket.io/")
    print(f"{'='*60}\n")
    socketio.run(app, debug=app.config["DEBUG"], host=host, port=port, use_reloader=False, allow_unsafe_werkzeug=True)
