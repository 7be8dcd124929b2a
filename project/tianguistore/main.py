# tianguistore/main.py

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from dotenv import load_dotenv
from contextlib import asynccontextmanager

from tianguistore.config import settings
from tianguistore.utils.log import Log
from tianguistore.utils.database import init_db
from tianguistore.middleware.db_middleware import DBSessionMiddleware
from tianguistore.routes import auth, cart, order

# --- environment variables ---
load_dotenv()

# --- sync logger for early start-up ---
boot_log = Log()

# ────────────── Lifespan ──────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    boot_log.log_info_sync(target="startup", message="lifespan: inicio")

    await init_db()
    boot_log.log_info_sync(target="startup", message="Base de datos inicializada")

    app.state.log = Log()
    await app.state.log.log_info(target="startup", message="Log asíncrono inicializado")

    yield

    # shutdown
    await app.state.log.log_info(target="shutdown", message="Deteniendo la aplicación")
    await app.state.log.shutdown()
    boot_log.log_info_sync(target="shutdown", message="Log cerrado")


def create_app() -> FastAPI:
    app = FastAPI(title="TianguiStore API", version="0.3.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # request.state.db for every HTTP request
    app.add_middleware(DBSessionMiddleware)

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok"}

    # ────────────── Routers ──────────────
    app.include_router(auth.router, prefix="/auth", tags=["auth"])
    app.include_router(order.router, prefix="/pedidos", tags=["pedidos"])
    app.include_router(cart.router, prefix="/carrito", tags=["carrito"])

    return app


app = create_app()

# ────────────── uvicorn ──────────────
if __name__ == "__main__":
    boot_log.log_info_sync(target="startup", message="Arrancando uvicorn")
    uvicorn.run(
        "tianguistore.main:app",
        host="127.0.0.1",
        port=8000,
        log_level="info",
        reload=True
    )
