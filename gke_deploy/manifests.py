"""
manifests
---------

GKE 에 적용할 Deployment / Service 디스크립터를 만든다.

I/O 없는 순수 함수이며, 같은 입력이면 항상 같은 구조가 나온다.
(재적용 시 kubectl apply 가 변경 없음으로 처리할 수 있어야 한다)
"""

from __future__ import annotations

import json
from typing import Any, Dict, Tuple


CREATED_BY_LABEL = "created-by"
CREATED_BY_VALUE = "gke-deploy-kit"
CONTAINER_PORT = 8080
SERVICE_PORT = 80
REPLICAS = 1

Descriptor = Dict[str, Any]


def service_object_name(service_name: str) -> str:
    return f"{service_name}-service"


def generate(service_name: str, image_ref: str) -> Tuple[Descriptor, Descriptor]:
    labels = {CREATED_BY_LABEL: CREATED_BY_VALUE}
    selector = {"app": service_name}

    deployment: Descriptor = {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {
            "name": service_name,
            "labels": dict(labels),
        },
        "spec": {
            "replicas": REPLICAS,
            "selector": {"matchLabels": dict(selector)},
            "template": {
                "metadata": {"labels": dict(selector)},
                "spec": {
                    "containers": [
                        {
                            "name": service_name,
                            "image": image_ref,
                            "ports": [{"containerPort": CONTAINER_PORT}],
                        }
                    ],
                },
            },
        },
    }

    service: Descriptor = {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": service_object_name(service_name),
            "labels": dict(labels),
        },
        "spec": {
            "type": "LoadBalancer",
            "ports": [{"port": SERVICE_PORT, "targetPort": CONTAINER_PORT}],
            "selector": dict(selector),
        },
    }

    return deployment, service


def render(descriptor: Descriptor) -> str:
    """kubectl apply -f - 로 넘길 JSON. 키를 정렬해 바이트 단위로 결정적이다."""
    return json.dumps(descriptor, sort_keys=True, separators=(",", ":"))
