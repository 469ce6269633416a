from fastapi import APIRouter, Response
from prometheus_client import CollectorRegistry, Counter, generate_latest, CONTENT_TYPE_LATEST

router = APIRouter()

# Own registry so repeated app construction (tests, reload) never re-registers
registry = CollectorRegistry()

messages_read = Counter(
    "topic_console_messages_read_total", "Records returned by message reads", ["topic"], registry=registry
)
messages_published = Counter(
    "topic_console_messages_published_total", "Records published through the API", ["topic"], registry=registry
)
request_errors = Counter(
    "topic_console_request_errors_total", "Failed API operations", ["operation", "status"], registry=registry
)


@router.get("/metrics")
def metrics():
    return Response(generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
