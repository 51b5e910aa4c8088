from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from kubernetes.config import ConfigException

from nodepoolctl import registry
from nodepoolctl.modules.nodepool import (
    AccessError,
    ConfigurationError,
    KubernetesClusterAPI,
    NodePoolLifecycle,
    NodePoolSpec,
)
from nodepoolctl.utils.kube import get_api_client

router = APIRouter()


def get_lifecycle() -> NodePoolLifecycle:
    try:
        api_client = get_api_client()
    except (ConfigurationError, FileNotFoundError, ConfigException) as e:
        raise HTTPException(status_code=503, detail=str(e))
    return NodePoolLifecycle(KubernetesClusterAPI(api_client))


@router.post("/nodepools")
def create_nodepool(spec: NodePoolSpec, lifecycle: NodePoolLifecycle = Depends(get_lifecycle)):
    outcome = lifecycle.create(spec)
    entry = registry.register_pool(spec.node_pool_name, spec.to_state(), ready=outcome.success)
    if not outcome.success:
        return JSONResponse(status_code=409, content=outcome.to_dict())
    return {"outcome": outcome.to_dict(), "settings": entry["settings"]}


@router.get("/nodepools")
def list_nodepools():
    return registry.load_registry()


@router.get("/nodepools/{name}")
def get_nodepool(name: str):
    entry = registry.get_pool(name)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Node pool '{name}' not found")
    return entry


@router.get("/nodepools/{name}/status")
def nodepool_status(name: str, lifecycle: NodePoolLifecycle = Depends(get_lifecycle)):
    try:
        spec = registry.resolve_spec(name)
        status = lifecycle.status(spec)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except AccessError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return status.to_dict()


@router.post("/nodepools/{name}/uncordon")
def uncordon_nodepool(name: str, lifecycle: NodePoolLifecycle = Depends(get_lifecycle)):
    try:
        spec = registry.resolve_spec(name)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    outcome = lifecycle.uncordon(spec)
    if not outcome.success:
        return JSONResponse(status_code=409, content=outcome.to_dict())
    return outcome.to_dict()


@router.delete("/nodepools/{name}")
def delete_nodepool(
    name: str,
    drain_timeout: Optional[str] = None,
    drain_wait: Optional[str] = None,
    lifecycle: NodePoolLifecycle = Depends(get_lifecycle),
):
    try:
        spec = registry.resolve_spec(name, drain_timeout=drain_timeout, drain_wait=drain_wait)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    outcome = lifecycle.delete(spec)
    if not outcome.success:
        return JSONResponse(status_code=409, content=outcome.to_dict())
    registry.remove_pool(name)
    return outcome.to_dict()
