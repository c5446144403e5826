"""Deployment descriptor: schema, validation and Kubernetes rendering.

The descriptor is data for the orchestrator. This module only checks that it
is well formed and turns it into the Deployment/Service pair that
``kubectl apply`` consumes:

    replicas: 3
    image: hello-ci:latest
    containerPort: 3000
    service:
      exposedPort: 80
      routing: NodeExposed
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError, field_validator, model_validator

from .errors import ConfigError, DescriptorError

# Both patterns are applied with fullmatch.
NAME_RE = re.compile(r"[a-z](?:[a-z0-9\-]{0,61}[a-z0-9])?")
_PATH_COMPONENT = r"[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*"
IMAGE_RE = re.compile(
    r"(?:[a-z0-9][a-z0-9.\-]*(?::[0-9]+)?/)?"  # registry host[:port]/
    rf"{_PATH_COMPONENT}(?:/{_PATH_COMPONENT})*"  # repository path
    r"(?::[A-Za-z0-9_][A-Za-z0-9_.\-]{0,127})?"  # :tag
    r"(?:@sha256:[a-f0-9]{64})?"  # @digest
)


class Routing(str, Enum):
    CLUSTER_LOCAL = "ClusterLocal"
    NODE_EXPOSED = "NodeExposed"


SERVICE_TYPES: dict[Routing, str] = {
    Routing.CLUSTER_LOCAL: "ClusterIP",
    Routing.NODE_EXPOSED: "NodePort",
}


class ServiceSpec(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    exposed_port: StrictInt = Field(..., alias="exposedPort", ge=1, le=65535, description="Port the Service listens on")
    routing: Routing = Field(..., description="ClusterLocal|NodeExposed")
    node_port: StrictInt | None = Field(
        None, alias="nodePort", ge=30000, le=32767, description="Fixed node port (NodeExposed only)"
    )

    @model_validator(mode="after")
    def _node_port_needs_node_routing(self) -> ServiceSpec:
        if self.node_port is not None and self.routing is not Routing.NODE_EXPOSED:
            raise ValueError("nodePort is only allowed with routing NodeExposed")
        return self


class DeploymentDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    name: str = Field("hello", description="Object name for the Deployment and Service (dns-safe)")
    replicas: StrictInt = Field(..., ge=1, description="Number of service replicas")
    image: str = Field(..., description="Container image (registry/name:tag)")
    container_port: StrictInt = Field(
        ..., alias="containerPort", ge=1, le=65535, description="Port the service process binds"
    )
    service: ServiceSpec

    @field_validator("name")
    @classmethod
    def _dns_safe_name(cls, value: str) -> str:
        if not NAME_RE.fullmatch(value):
            raise ValueError(
                "name must be lowercase letters/numbers and hyphen, starting with a letter"
                " and ending with a letter or digit (max 63 chars)"
            )
        return value

    @field_validator("image")
    @classmethod
    def _image_reference(cls, value: str) -> str:
        if not IMAGE_RE.fullmatch(value):
            raise ValueError(f"image {value!r} is not a valid image reference (registry/name:tag)")
        return value

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _problems(exc: ValidationError) -> list[str]:
    out: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "descriptor"
        out.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return out


def parse_descriptor(data: Any, source: str | None = None) -> DeploymentDescriptor:
    """Validate a mapping (e.g. parsed YAML) into a descriptor."""
    if not isinstance(data, Mapping):
        raise DescriptorError([f"descriptor must be a mapping, got {type(data).__name__}"], source=source)
    try:
        return DeploymentDescriptor.model_validate(dict(data))
    except ValidationError as e:
        raise DescriptorError(_problems(e), source=source) from e


def load_descriptor(path: str | Path) -> DeploymentDescriptor:
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise DescriptorError([f"cannot read file: {e.strerror or e}"], source=str(p)) from e
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise DescriptorError([f"invalid YAML: {e}"], source=str(p)) from e
    return parse_descriptor(data, source=str(p))


def render_manifests(descriptor: DeploymentDescriptor) -> list[dict[str, Any]]:
    """Kubernetes objects for the descriptor: one Deployment, one Service.

    Labels on the Deployment, its pod template, its selector and the Service
    selector are identical, and every port reference points at
    ``containerPort``.
    """
    name = descriptor.name
    port = descriptor.container_port
    labels = {"app": name}

    container: dict[str, Any] = {
        "name": name,
        "image": descriptor.image,
        # Images are loaded into the cluster, not pulled from a registry.
        "imagePullPolicy": "IfNotPresent",
        "ports": [{"containerPort": port, "protocol": "TCP"}],
        "env": [{"name": "PORT", "value": str(port)}],
        "readinessProbe": {
            "tcpSocket": {"port": port},
            "initialDelaySeconds": 1,
            "periodSeconds": 5,
        },
        "livenessProbe": {
            "tcpSocket": {"port": port},
            "initialDelaySeconds": 5,
            "periodSeconds": 10,
            "failureThreshold": 3,
        },
    }

    deployment = {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": name, "labels": dict(labels)},
        "spec": {
            "replicas": descriptor.replicas,
            "selector": {"matchLabels": dict(labels)},
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": {"containers": [container]},
            },
        },
    }

    svc = descriptor.service
    service_port: dict[str, Any] = {"port": svc.exposed_port, "targetPort": port, "protocol": "TCP"}
    if svc.node_port is not None:
        service_port["nodePort"] = svc.node_port

    service = {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": name, "labels": dict(labels)},
        "spec": {
            "type": SERVICE_TYPES[svc.routing],
            "selector": dict(labels),
            "ports": [service_port],
        },
    }
    return [deployment, service]


def dump_manifests(descriptor: DeploymentDescriptor) -> str:
    return yaml.safe_dump_all(render_manifests(descriptor), sort_keys=False, default_flow_style=False)


def check_port_coupling(descriptor: DeploymentDescriptor, port: int) -> None:
    """Raise ConfigError unless the descriptor routes traffic to ``port``."""
    if descriptor.container_port != port:
        raise ConfigError(
            f"containerPort {descriptor.container_port} in descriptor '{descriptor.name}' "
            f"does not match the service port {port}"
        )
