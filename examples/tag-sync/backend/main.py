"""
Replicated Tag Set - Backend

A simple example exposing one lwwset replica over HTTP. Run several
instances and POST one's /state to another's /merge to converge them.
Run with: python main.py

Environment variables:
  REPLICA_ID - Name of this replica (default: replica-1)
  BIND_HOST  - Interface to listen on (default: 127.0.0.1)
  BIND_PORT  - Port to listen on (default: 8002)
"""

import sys
import os

# Add the parent package to path for development
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", "..", "python"))

from fastapi import FastAPI, HTTPException

from lwwset import PreconditionViolation, Replica, SetState

replica = Replica(os.environ.get("REPLICA_ID", "replica-1"))

# Create FastAPI app
app = FastAPI(title="lwwset tag sync")


@app.get("/tags")
def list_tags():
    """Current tags, sorted."""
    return {"replica": replica.replica_id, "tags": sorted(replica.value())}


@app.put("/tags/{tag}")
def add_tag(tag: str):
    event = replica.add(tag)
    return {"tag": tag, "timestamp": event.timestamp}


@app.delete("/tags/{tag}")
def remove_tag(tag: str):
    try:
        event = replica.remove(tag)
    except PreconditionViolation:
        raise HTTPException(status_code=404, detail=f"Tag '{tag}' is not in the set")
    return {"tag": tag, "timestamp": event.timestamp}


@app.get("/state")
def get_state() -> SetState:
    """Full state, to be POSTed to another replica's /merge."""
    return SetState.model_validate(replica.state())


@app.post("/merge")
def merge_state(state: SetState):
    try:
        merged = replica.receive(state)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return {"replica": replica.replica_id, "tags": sorted(merged.value())}


if __name__ == "__main__":
    import uvicorn
    bind_host = os.environ.get("BIND_HOST", "127.0.0.1")
    bind_port = int(os.environ.get("BIND_PORT", "8002"))
    uvicorn.run(app, host=bind_host, port=bind_port)
