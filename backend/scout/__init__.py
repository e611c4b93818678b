"""
Knowledge Scout Backend - Package Initializer
=============================================

What: Marks the `scout` directory as a Python package.
Who:  Imported by uvicorn, pytest and the `scout-server` entry point.

Architecture Note:
    The package holds both ends of the request/response pipeline:

    ┌─────────────────────────────────────┐
    │   client/  (typed request executor) │  ← every API call goes through here
    ├─────────────────────────────────────┤
    │   middleware/ + main.py             │  ← every inbound request passes here
    ├─────────────────────────────────────┤
    │   routes/  (auth, documents, chat)  │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   services/ (business collaborators)│
    ├─────────────────────────────────────┤
    │   models/ + database.py             │  ← async SQLAlchemy
    └─────────────────────────────────────┘

    lifecycle.py owns the process: socket bind, demo seed, graceful shutdown.
"""

__version__ = "1.0.0"
