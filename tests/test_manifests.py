from gke_deploy import manifests


def test_generate_is_deterministic() -> None:
    a = manifests.generate("svc", "repo/svc:latest")
    b = manifests.generate("svc", "repo/svc:latest")

    assert a == b
    assert manifests.render(a[0]) == manifests.render(b[0])
    assert manifests.render(a[1]) == manifests.render(b[1])


def test_deployment_shape() -> None:
    deployment, _ = manifests.generate("svc", "repo/svc:latest")

    assert deployment["kind"] == "Deployment"
    assert deployment["metadata"]["labels"] == {"created-by": "gke-deploy-kit"}
    assert deployment["spec"]["replicas"] == 1
    containers = deployment["spec"]["template"]["spec"]["containers"]
    assert containers == [
        {"name": "svc", "image": "repo/svc:latest", "ports": [{"containerPort": 8080}]}
    ]
    assert deployment["spec"]["selector"]["matchLabels"] == deployment["spec"]["template"]["metadata"]["labels"]


def test_service_routes_port_80_to_container() -> None:
    _, service = manifests.generate("svc", "repo/svc:latest")

    assert service["metadata"]["name"] == "svc-service"
    assert service["metadata"]["labels"]["created-by"] == "gke-deploy-kit"
    assert service["spec"]["type"] == "LoadBalancer"
    assert service["spec"]["ports"] == [{"port": 80, "targetPort": 8080}]
    assert service["spec"]["selector"] == {"app": "svc"}


def test_generated_descriptors_are_not_shared() -> None:
    deployment, _ = manifests.generate("svc", "img")
    deployment["metadata"]["labels"]["extra"] = "x"

    again, _ = manifests.generate("svc", "img")
    assert "extra" not in again["metadata"]["labels"]
