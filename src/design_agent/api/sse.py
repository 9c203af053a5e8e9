import json


def format_sse_event(event_type: str, data: str) -> dict:
    """Format an SSE event for sse-starlette's EventSourceResponse."""
    return {"event": event_type, "data": data}


def sse_message(message: dict) -> dict:
    return format_sse_event("message", json.dumps(message))


def sse_artifact(artifact: dict) -> dict:
    return format_sse_event("artifact", json.dumps(artifact))


def sse_status(status: dict) -> dict:
    return format_sse_event("status", json.dumps(status))


def sse_error(error: dict) -> dict:
    return format_sse_event("error", json.dumps(error))


def sse_cleared() -> dict:
    return format_sse_event("cleared", "{}")


def sse_init(data: dict) -> dict:
    return format_sse_event("init", json.dumps(data))


def sse_from_session_event(event) -> dict:
    if event.type == "message":
        return sse_message(event.data)
    if event.type == "artifact":
        return sse_artifact(event.data)
    if event.type == "status":
        return sse_status(event.data)
    if event.type == "error":
        return sse_error(event.data)
    if event.type == "cleared":
        return sse_cleared()
    return format_sse_event(event.type, json.dumps(event.data))
