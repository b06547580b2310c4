import json
import logging
import queue
import threading

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from kubicd.api.dependencies import get_orchestrator
from kubicd.errors import SinkClosed
from kubicd.modules.join import AggregateResult, JoinOrchestrator, NodeRequest, NodeRole, StatusEvent

logger = logging.getLogger("kubicd.api.nodes")

router = APIRouter()


class AddNodeRequest(BaseModel):
    names: str = Field(..., min_length=1)
    type: str = "worker"


@router.post("/nodes")
def add_nodes(req: AddNodeRequest, orchestrator: JoinOrchestrator = Depends(get_orchestrator)):
    """Add nodes and stream progress as newline-delimited JSON."""
    try:
        role = NodeRole.parse(req.type)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    request = NodeRequest(names=req.names, role=role)
    events: "queue.Queue" = queue.Queue()
    disconnected = threading.Event()

    def sink(event: StatusEvent) -> None:
        if disconnected.is_set():
            raise SinkClosed("client disconnected")
        events.put(event)

    def run() -> None:
        try:
            result = orchestrator.add_nodes(request, sink)
        except Exception as e:
            logger.error("Adding node(s) '%s' failed: %s", request.names, e, exc_info=True)
            result = AggregateResult(error=str(e))
        events.put(result)

    threading.Thread(target=run, name="add-nodes", daemon=True).start()

    def stream():
        try:
            while True:
                item = events.get()
                if isinstance(item, AggregateResult):
                    yield json.dumps({"result": item.to_dict()}) + "\n"
                    return
                yield json.dumps(item.to_dict()) + "\n"
        finally:
            disconnected.set()

    return StreamingResponse(stream(), media_type="application/x-ndjson")
