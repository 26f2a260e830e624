import logging
from fastapi import FastAPI
from . import models
from .config import get_settings
from .database import engine
from .routers import auth, esewa

# fail fast: raises ConfigurationError when ESEWA_SECRET_KEY is missing
settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

models.Base.metadata.create_all(bind=engine)


app = FastAPI(title="Handicraft Store")


app.include_router(auth.router)
app.include_router(esewa.router)


@app.get("/")
def root():
    return {"message" : "Welcome to Handicraft Store"}
