"""
extensions.py — Flask extension singletons.

Creates the SQLAlchemy and marshmallow extension objects with no app
attached. Both are bound inside the app factory (create_app) via
init_app(app), so every test can build its own isolated app instance and
the database handle only exists once a factory has configured it.

    from backend.playmatch.extensions import db, ma

Services never import `db` — they receive a Session argument from the route
(or from the sweeper job), which keeps them testable with a MagicMock.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_marshmallow import Marshmallow

db = SQLAlchemy()

# Marshmallow instance — bound to the app for flask-marshmallow helpers.
#
# IMPORTANT — schema inheritance rule:
#   All validation Schema classes (in playmatch/schemas/) inherit from
#   marshmallow.Schema directly, NOT from ma.Schema.
#
#   ma.Schema requires an active Flask application context, and the unit
#   tests in tests/unit/ run without a Flask app.
#
#   Correct:
#       from marshmallow import Schema, fields
#       class CreateGameCardSchema(Schema): ...
#
#   Incorrect:
#       class CreateGameCardSchema(ma.Schema): ...   # breaks unit tests
ma = Marshmallow()
