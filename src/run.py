"""Bulletin board server entry point.

Reads ``PORT`` (default 3000) and the debug flag from the environment.
"""

from board import create_app
from app_config import get_port, is_debug

app = create_app()

if __name__ == "__main__":
    port = get_port()
    print(f"Server is running on http://localhost:{port}")
    # Bind every interface so the board is reachable from containers and VMs.
    app.run(host="0.0.0.0", port=port, debug=is_debug())
