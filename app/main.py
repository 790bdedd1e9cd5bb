from fastapi import FastAPI
from tortoise.contrib.fastapi import register_tortoise

from app import settings
from app.routers import alerts, events, maintenance

TORTOISE_MODULES = {"models": ["app.models"]}

app = FastAPI(title="Punch-In sync service", version="1.0.0")

app.include_router(events.router)
app.include_router(alerts.router)
app.include_router(maintenance.router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


register_tortoise(
    app,
    db_url=settings.db_url,
    modules=TORTOISE_MODULES,
    generate_schemas=True,
)
