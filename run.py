"""
Development entry point for the Sampaguita registry API.

Running this module creates any missing tables and starts Flask's
built-in server. Production deployments serve ``wsgi:app`` and run
``flask db upgrade`` instead of relying on ``create_all``.
"""

import os

from sampaguita import create_app, db

app = create_app()

if __name__ == "__main__":
    with app.app_context():
        db.create_all()
    port = int(os.environ.get("PORT", "5000"))
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG", "1") == "1")
