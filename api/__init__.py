"""
AI Oracle HTTP API (FastAPI)

- GET  /health              Liveness probe
- POST /resolve/{market_id} Resolve synchronously
- POST /jobs                Enqueue a resolution job
- GET  /jobs/{job_id}       Job status
- GET  /status              Signer, authorization and engine stats

Usage:
    uvicorn api.app:app --reload
"""

__version__ = "0.1.0"
