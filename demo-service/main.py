import os
import time
import uuid
import random
from fastapi import APIRouter, Body, Depends, FastAPI, Request, Response
from loguru import logger
from dotenv import load_dotenv
from typing import Any, Dict, List
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from models import DEMO_USERS, get_random, new_user_id
from schemas import GreetingResponse, UserResponse

# Chargement des variables d'environnement
load_dotenv()

SERVICE_NAME = "demo-service"
API_PREFIX = "/api/v1"

# Config logging JSON (niveaux INFO, WARNING, ERROR)
logger.remove()  # Supprime le handler par défaut
logger.add(
    sink=os.getenv("LOG_FILE", "logs.json"),
    format="{time:YYYY-MM-DDTHH:mm:ss.SSSZ} | {level} | {message} | {extra}",
    level=os.getenv("LOG_LEVEL", "INFO"),
    serialize=True,  # Format JSON
    rotation="1 day",  # Rotation quotidienne
)

# Prometheus metrics
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "method", "endpoint", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["service", "method", "endpoint"]
)
ERROR_COUNT = Counter(
    "http_errors_total",
    "Total HTTP errors",
    ["service", "endpoint", "error_type"]
)
USERS_CREATED = Counter(
    "users_created_total",
    "Total users echoed back by POST /users",
    ["service"]
)

app = FastAPI(title="Demo Service")
router = APIRouter(prefix=API_PREFIX, tags=["demo"])


def route_label(request: Request) -> str:
    """Template de la route matchée, pour borner la cardinalité des labels"""
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


# Middleware pour logger les requests avec correlation ID (observabilité)
@app.middleware("http")
async def log_requests(request: Request, call_next):
    # Generate or propagate correlation ID (trace-id)
    trace_id = request.headers.get("X-Trace-ID", str(uuid.uuid4()))
    start_time = time.time()

    with logger.contextualize(trace_id=trace_id, service=SERVICE_NAME):
        # Le chemin brut ne doit jamais servir de format string
        logger.bind(method=request.method, url=str(request.url)).info(
            "Request: {} {}", request.method, request.url.path
        )

        response = await call_next(request)
        latency = time.time() - start_time
        endpoint = route_label(request)

        REQUEST_COUNT.labels(
            service=SERVICE_NAME,
            method=request.method,
            endpoint=endpoint,
            status=response.status_code
        ).inc()
        REQUEST_LATENCY.labels(
            service=SERVICE_NAME,
            method=request.method,
            endpoint=endpoint
        ).observe(latency)

        # Les erreurs (422, 404, 405...) restent celles du framework, on se contente de les compter
        if response.status_code >= 400:
            error_type = "server_error" if response.status_code >= 500 else "client_error"
            logger.bind(status=response.status_code, error_type=error_type).warning(
                "Request failed with status {}", response.status_code
            )
            ERROR_COUNT.labels(service=SERVICE_NAME, endpoint=endpoint, error_type=error_type).inc()

        logger.bind(status=response.status_code, latency=latency).info(
            "Response status: {}", response.status_code
        )

        response.headers["X-Trace-ID"] = trace_id
        return response


@app.get("/metrics")
async def metrics():
    """Endpoint /metrics compatible Prometheus"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/greeting", response_model=GreetingResponse)
async def greeting(name: str = "World"):
    logger.info("Greeting {!r}", name)
    return GreetingResponse(message=f"Hello, {name}!")


@router.get("/users", response_model=List[UserResponse])
async def get_users():
    logger.info("Fetching demo users")
    return list(DEMO_USERS)


@router.post("/users")
async def create_user(
    user: Dict[str, Any] = Body(...),
    rng: random.Random = Depends(get_random),
):
    """
    Renvoie le payload reçu avec un nouvel id aléatoire.
    Aucun stockage : GET /users n'est pas affecté.
    """
    if "id" in user:
        logger.info("Discarding caller-supplied id {!r}", user["id"])
    user["id"] = new_user_id(rng)
    USERS_CREATED.labels(service=SERVICE_NAME).inc()
    logger.info(f"User echoed with ID {user['id']}")
    return user


app.include_router(router)


if __name__ == "__main__":
    port = int(os.getenv("PORT", 8080))
    host = os.getenv("HOST", "0.0.0.0")
    logger.info(f"Starting Demo Service on {host}:{port}")
    import uvicorn
    uvicorn.run(app, host=host, port=port)
