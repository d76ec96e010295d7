import os
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError
from settings.config import settings
from db.db_operation import MongoConnection, create_indexes
from core.exceptions import request_validation_handler, database_exception_handler, global_exception_handler
from services.notification_service import Notifier
from utils.logger import get_logger
from routes import (
    auth, user_routes, restaurant_routes, menu_routes, reservation_routes,
    review_routes, favorite_routes, upload_routes, notification_routes,
)

logger = get_logger("main")

app = FastAPI(title="Restaurant Reservation & Review API", version="1.0.0")

@app.get("/")
async def health_check():
    logger.info("Health check is successful")
    return {
        "status": "ok",
        "app": settings.PROJECT_NAME,
        "message": "FastAPI is running"
    }

@app.on_event("startup")
async def startup_event():
    mongo = MongoConnection()
    await mongo.connect()
    await create_indexes(mongo)
    app.state.mongo = mongo
    app.state.notifier = Notifier()
    app.state.notifier.start()
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)

@app.on_event("shutdown")
async def shutdown_event():
    notifier = getattr(app.state, "notifier", None)
    if notifier is not None:
        await notifier.stop()
    mongo = getattr(app.state, "mongo", None)
    if mongo is not None:
        mongo.close()

app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(PyMongoError, database_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(auth.router)
app.include_router(user_routes.router)
app.include_router(restaurant_routes.router)
app.include_router(menu_routes.router)
app.include_router(reservation_routes.router)
app.include_router(review_routes.router)
app.include_router(favorite_routes.router)
app.include_router(upload_routes.router)
app.include_router(notification_routes.router)

app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")
