from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import typer
import uvicorn
import yaml
from kubernetes import config as kube_config
from pydantic import ValidationError

from resource_override.admission.models import AdmissionReview
from resource_override.admission.plugin import ClusterResourceOverride, MutatingHook
from resource_override.admission.response import decode_patch
from resource_override.limits.cache import ResourceCache
from resource_override.limits.sync import ClusterSync
from resource_override.override.config import ConfigError, OverrideConfig, load_config
from resource_override.server.app import app as web_app
from resource_override.server.app import get_hook

app = typer.Typer(help="Override pod resource requests and limits at admission time.")

logger = logging.getLogger(__name__)


@app.command()
def serve(
    config: Path = typer.Option(
        Path("/etc/resource-override/config.yaml"),
        "--config",
        "-c",
        envvar="OVERRIDE_CONFIG",
        help="Override configuration file.",
    ),
    host: str = typer.Option("0.0.0.0", envvar="OVERRIDE_HOST", help="Address to bind."),
    port: int = typer.Option(8443, envvar="OVERRIDE_PORT", help="Port to listen on."),
    tls_cert: Optional[Path] = typer.Option(
        None,
        "--tls-cert",
        envvar="OVERRIDE_TLS_CERT",
        help="Serving certificate; plain HTTP when omitted.",
    ),
    tls_key: Optional[Path] = typer.Option(
        None,
        "--tls-key",
        envvar="OVERRIDE_TLS_KEY",
        help="Private key for --tls-cert.",
    ),
    in_cluster: bool = typer.Option(
        False,
        "--in-cluster",
        envvar="OVERRIDE_IN_CLUSTER",
        help="Use in-cluster config (for running inside Kubernetes).",
    ),
    kubeconfig: Optional[Path] = typer.Option(
        None,
        "--kubeconfig",
        envvar="KUBECONFIG",
        help="Kubeconfig used when not running in cluster.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    configure_logging(verbose)
    override_config = _load_override_config(config)
    if (tls_cert is None) != (tls_key is None):
        raise typer.BadParameter("--tls-cert and --tls-key must be given together")

    if in_cluster:
        kube_config.load_incluster_config()
        logger.info("Loaded in-cluster configuration")
    else:
        kube_config.load_kube_config(config_file=str(kubeconfig) if kubeconfig else None)
        logger.info("Loaded kubeconfig")

    cache = ResourceCache()
    sync = ClusterSync(cache)
    sync.start()
    get_hook().initialize(lambda: ClusterResourceOverride(override_config, cache, cache))

    try:
        uvicorn.run(
            web_app,
            host=host,
            port=port,
            ssl_certfile=str(tls_cert) if tls_cert else None,
            ssl_keyfile=str(tls_key) if tls_key else None,
            log_level="debug" if verbose else "info",
        )
    finally:
        sync.stop()


@app.command()
def review(
    request: Path = typer.Option(
        ...,
        "--request",
        "-r",
        help="AdmissionReview JSON file to evaluate.",
    ),
    config: Path = typer.Option(
        Path("configs/override.yaml"),
        "--config",
        "-c",
        help="Override configuration file.",
    ),
    cluster_state: Optional[Path] = typer.Option(
        None,
        "--cluster-state",
        "-s",
        help="YAML file with 'namespaces' and 'limitRanges' lists.",
    ),
    out: Path = typer.Option(
        Path("data/review.json"),
        "--out",
        "-o",
        help="Where to write the AdmissionReview response.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    configure_logging(verbose)
    override_config = _load_override_config(config)
    admission_review = _load_review(request)
    admission_request = admission_review.request

    if cluster_state is not None:
        namespaces, limit_ranges = _load_cluster_state(cluster_state)
    else:
        namespaces, limit_ranges = [{"metadata": {"name": admission_request.namespace}}], []
    cache = ResourceCache.from_objects(namespaces, limit_ranges)

    hook = MutatingHook()
    hook.initialize(lambda: ClusterResourceOverride(override_config, cache, cache))
    admission_response = hook.admit(admission_request)

    result = AdmissionReview(
        api_version=admission_review.api_version,
        kind=admission_review.kind,
        response=admission_response,
    ).to_wire()
    record = {"review": result, "patch": decode_patch(admission_response)}

    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(record, indent=2), encoding="utf-8")
    verdict = "allowed" if admission_response.allowed else "denied"
    typer.echo(f"Request {verdict} with {len(record['patch'])} patch operation(s); written to {out.resolve()}")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _load_override_config(path: Path) -> OverrideConfig:
    try:
        return load_config(path)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _load_review(path: Path) -> AdmissionReview:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Input file not found: {path}") from exc
    if not isinstance(data, dict):
        raise typer.BadParameter("AdmissionReview file must contain a JSON object")
    try:
        admission_review = AdmissionReview.model_validate(data)
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid AdmissionReview: {exc}") from exc
    if admission_review.request is None:
        raise typer.BadParameter("AdmissionReview file has no request")
    return admission_review


def _load_cluster_state(path: Path) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Cluster state file not found: {path}") from exc
    if not isinstance(data, dict):
        raise typer.BadParameter("Cluster state file must contain a mapping")
    namespaces: List[Dict[str, Any]] = data.get("namespaces") or []
    limit_ranges: List[Dict[str, Any]] = data.get("limitRanges") or []
    return namespaces, limit_ranges


if __name__ == "__main__":  # pragma: no cover
    app()
