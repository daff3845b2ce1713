import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from settings.config import settings
from db.db_operation import mongo_conn, create_indexes
from core.exceptions import setup_exception_handlers
from core.middleware import RequestTimeoutMiddleware
from utils.logger import get_logger
from routes import (
    auth, user_routes, restaurant_routes, product_routes, cart_routes, order_route,
    review_routes, rider_routes, admin_routes,
)

logger = get_logger("main")

app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION)

async def _health():
    database = "connected" if await mongo_conn.ping() else "unavailable"
    return {
        "status": "ok" if database == "connected" else "degraded",
        "app": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "database": database,
    }

@app.get("/")
async def root():
    logger.info("Health check requested")
    return await _health()

@app.get("/health")
async def health_check():
    return await _health()

@app.on_event("startup")
async def startup_event():
    await mongo_conn.connect()
    await create_indexes()

@app.on_event("shutdown")
async def shutdown_event():
    mongo_conn.close()

setup_exception_handlers(app)
app.add_middleware(RequestTimeoutMiddleware, timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth.router)
app.include_router(user_routes.router)
app.include_router(restaurant_routes.router)
app.include_router(product_routes.router)
app.include_router(cart_routes.router)
app.include_router(order_route.router)
app.include_router(review_routes.router)
app.include_router(rider_routes.router)
app.include_router(admin_routes.router)


def run():
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
