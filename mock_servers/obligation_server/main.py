from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
from typing import Dict
import threading

app = FastAPI(title="Mock Obligation Server", version="1.0.0")

# order_id -> notes bag; each bag is replaced whole, never patched
NOTES: Dict[str, Dict[str, str]] = {}
_lock = threading.Lock()


class NotesBody(BaseModel):
    notes: Dict[str, str]


def _revision(notes: Dict[str, str]) -> int:
    try:
        return int(notes.get("revision", "0"))
    except ValueError:
        return 0


@app.get("/health")
def health(): return {"status": "ok"}

@app.put("/orders/{order_id}/notes")
def put_notes(order_id: str, body: NotesBody):
    with _lock:
        current = NOTES.get(order_id)
        if current is not None and _revision(body.notes) < _revision(current):
            raise HTTPException(status_code=409, detail="newer revision already stored")
        NOTES[order_id] = dict(body.notes)
    return {"order_id": order_id, "revision": _revision(body.notes)}

@app.get("/orders/{order_id}/notes")
def get_notes(order_id: str):
    with _lock:
        notes = NOTES.get(order_id)
    if notes is None:
        raise HTTPException(status_code=404, detail="order not found")
    return {"order_id": order_id, "notes": notes}
