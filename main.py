import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

import database
from catalogue import Catalogue
from graphql_api import create_graphql_router, get_catalogue

GRAPHQL_PATH = os.getenv("GRAPHQL_PATH", "/graphql")

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # An unreachable database raises here and aborts startup
    db = database.connect()
    app.state.catalogue = Catalogue(db)
    try:
        yield
    finally:
        database.disconnect(db)


app = FastAPI(title="Catalogue API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(create_graphql_router(), prefix=GRAPHQL_PATH)


@app.get("/")
def read_root():
    return {"message": "Catalogue API running", "graphql": GRAPHQL_PATH}


@app.get("/test")
def test_database(catalogue: Catalogue = Depends(get_catalogue)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        status = catalogue.status()
        response["database"] = "✅ Connected & Working"
        response["database_name"] = status["database_name"]
        response["connection_status"] = "Connected"
        response["collections"] = status["collections"][:20]
    except database.StoreError as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 3000))
    uvicorn.run(app, host="0.0.0.0", port=port)
