from fastapi import FastAPI

from nodepoolctl.api.middleware import AuthMiddleware
from nodepoolctl.api.routes import nodepool

app = FastAPI(title="nodepoolctl")
app.add_middleware(AuthMiddleware)

app.include_router(nodepool.router)
