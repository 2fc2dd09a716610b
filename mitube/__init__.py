"""
MiTube Stats — Channel & Video Statistics Backend
==================================================
Aggregates view, subscription and engagement events for the MiTube
video-sharing platform into rolling per-day counters, and derives the
channel summary report shown in the creator dashboard.

Package layout::

    mitube/
    ├── config.py          # YAML → typed Python config
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helper
    │   └── models.py      # Catalog + stats ORM models
    ├── engine/
    │   └── stats.py       # Pure stats types, windowing, summary report
    ├── services/
    │   ├── errors.py            # NotFound / Persistence error taxonomy
    │   ├── catalog_service.py   # Video / user lookups
    │   ├── stats_service.py     # Event ingestion + lazy-create accessors
    │   └── retention_service.py # 90-day bucket cap + store statistics
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine, config, bearer-token identity
        └── routes/        # Stats REST endpoints
"""

__version__ = "0.1.0"
