from __future__ import annotations

import os, shutil
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from pydantic import ValidationError

from aks_cluster.config import load_cluster_config, load_settings
from aks_cluster.models import AzureCreds, ClusterConfig, DestroyRequest, PreviewRequest, UpRequest, ValidateRequest
from aks_cluster.observability.logging import get_logger, setup_logging
from aks_cluster.services.pulumi_engine import DeploymentError, PulumiEngine, init_pulumi_env
from aks_cluster.services.resource_graph import GraphError
from aks_cluster.services.topology import build_cluster_graph
from aks_cluster.services.utils import get_allowed_origins
from aks_cluster.services.validator import TopologyError

load_dotenv()
log = get_logger("api")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    settings = load_settings()
    setup_logging(settings.log_level)
    init_pulumi_env(settings)
    yield


app = FastAPI(title="AKS cluster configuration", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _export_azure_creds(creds: Optional[AzureCreds]):
    if not creds:
        return
    log.info("azure_creds_exported", client_id=creds.clientId, tenant_id=creds.tenantId)
    os.environ["ARM_CLIENT_ID"] = creds.clientId
    os.environ["ARM_CLIENT_SECRET"] = creds.clientSecret.get_secret_value()
    os.environ["ARM_TENANT_ID"] = creds.tenantId
    os.environ["ARM_SUBSCRIPTION_ID"] = creds.subscriptionId


def _resolve_config(config: Optional[ClusterConfig]) -> ClusterConfig:
    if config is not None:
        return config
    try:
        return load_cluster_config()
    except ValidationError as e:
        missing = ", ".join(str(err["loc"][0]) for err in e.errors())
        raise HTTPException(status_code=422, detail=f"Cluster configuration incomplete: {missing}") from e


@app.get("/health")
def health():
    settings = load_settings()
    return {
        "status": "ok",
        "project": settings.project_name,
        "stack": settings.stack_name,
        "location": settings.location or "",
        "pulumiOnPath": bool(shutil.which("pulumi")),
        "backend": os.getenv("PULUMI_BACKEND_URL", ""),
    }


@app.get("/graph")
def graph():
    config = _resolve_config(None)
    try:
        return build_cluster_graph(config).describe()
    except GraphError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


@app.post("/validate")
def validate(req: ValidateRequest):
    return PulumiEngine.validate(_resolve_config(req.config))


@app.post("/preview")
def preview(req: PreviewRequest):
    config = _resolve_config(req.config)
    _export_azure_creds(req.creds)
    try:
        return PulumiEngine.preview(config, load_settings(), req.stack)
    except (TopologyError, GraphError) as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except DeploymentError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@app.post("/up")
def up(req: UpRequest):
    config = _resolve_config(req.config)
    _export_azure_creds(req.creds)
    try:
        return PulumiEngine.up(config, load_settings(), req.stack)
    except (TopologyError, GraphError) as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except DeploymentError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@app.get("/outputs")
def outputs(stack: Optional[str] = None):
    try:
        return PulumiEngine.outputs(load_settings(), stack)
    except DeploymentError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@app.post("/destroy")
def destroy(req: DestroyRequest):
    _export_azure_creds(req.creds)
    try:
        return PulumiEngine.destroy(load_settings(), req.stack)
    except DeploymentError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
