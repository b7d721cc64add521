import sys

from promptjam import create_app, socketio
from promptjam.errors import LevelCatalogError

try:
    app = create_app()
except LevelCatalogError as exc:
    print(f"Cannot start: {exc}", file=sys.stderr)
    sys.exit(1)

if __name__ == '__main__':
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, debug=True)
