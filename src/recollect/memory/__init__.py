"""Access to the external memory service.

The service owns long-term storage of memories. This package only defines
the read model (`types`) and an HTTP adapter (`client`) that speaks the
service's REST API:

    POST   /api/memories            create
    POST   /api/memories/search     ranked search
    POST   /api/memories/batch      batch create
    PATCH  /api/memories/{id}       partial update
    DELETE /api/memories/{id}       delete
    GET    /health                  health probe
"""
