import sys
from typing import Optional

import click

from .config import load_env_files, DeployConfig
from .logging_utils import setup_logging, get_logger
from .models import DeploymentRequest, SourceFile
from .orchestrator import Orchestrator


logger = get_logger(__name__)


@click.group()
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="작업 디렉토리 (.env 파일 위치, 기본: 현재 디렉토리)",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올립니다.",
)
@click.pass_context
def main(ctx: click.Context, chdir: str, verbose: int) -> None:
    """소스 파일을 Cloud Build 로 빌드해 GKE 에 배포하는 CLI"""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["chdir"] = chdir
    ctx.obj["verbose"] = verbose


def _target_options(fn):  # noqa: ANN001
    fn = click.option("--service", "service", default=None, help="서비스 이름 (기본: SERVICE_NAME 또는 app)")(fn)
    fn = click.option("--cluster", "cluster", default=None, help="GKE 클러스터 (기본: GKE_CLUSTER)")(fn)
    fn = click.option("--region", "region", default=None, help="리전 (기본: GCP_REGION)")(fn)
    fn = click.option("--project", "project", default=None, help="GCP 프로젝트 ID (기본: GCP_PROJECT_ID)")(fn)
    return fn


def _load_config_from_ctx(ctx: click.Context, project: Optional[str]) -> DeployConfig:
    base_dir: str = ctx.obj["chdir"]
    load_env_files(base_dir)
    cfg = DeployConfig.from_env(project_id=project)
    logger.debug("Config loaded: %s", cfg)
    return cfg


def _build_request(
    cfg: DeployConfig,
    *,
    project: Optional[str],
    region: Optional[str],
    cluster: Optional[str],
    service: Optional[str],
    files: tuple,
) -> DeploymentRequest:
    return DeploymentRequest(
        project_id=project or cfg.gcp_project_id,
        region=region or cfg.gcp_region,
        cluster_id=cluster or cfg.gke_cluster,
        service_name=service or cfg.service_name,
        files=[SourceFile.from_path(p) for p in files],
    )


def _load_or_exit(ctx: click.Context, project: Optional[str]) -> DeployConfig:
    try:
        return _load_config_from_ctx(ctx, project)
    except Exception as e:  # noqa: BLE001
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        sys.exit(1)


@main.command()
@_target_options
@click.pass_context
def plan(ctx: click.Context, project, region, cluster, service) -> None:  # noqa: ANN001
    """실행될 단계 순서와 파생 리소스 이름을 출력 (GCP 호출 없음)"""
    cfg = _load_or_exit(ctx, project)
    request = _build_request(cfg, project=project, region=region, cluster=cluster, service=service, files=())
    click.echo(Orchestrator(cfg).plan(request))


@main.command()
@_target_options
@click.pass_context
def check(ctx: click.Context, project, region, cluster, service) -> None:  # noqa: ANN001
    """
    배포 전에 API/버킷/리포/클러스터 상태를 점검한다.
    (실제 리소스 생성/변경은 하지 않는다)
    """
    cfg = _load_or_exit(ctx, project)
    request = _build_request(cfg, project=project, region=region, cluster=cluster, service=service, files=())

    try:
        report, has_issues = Orchestrator(cfg).check(request)
    except Exception as e:  # noqa: BLE001
        logger.exception("사전 체크 중 오류 발생")
        click.echo(f"[ERROR] 체크 실패: {e}", err=True)
        sys.exit(1)

    click.echo(report)

    # 치명적인 이슈가 있으면 exit 1 로 종료하여 CI 등에서 감지 가능하게 한다.
    if has_issues:
        sys.exit(1)


@main.command(name="deploy")
@_target_options
@click.option(
    "--folder",
    "folder",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=None,
    help="폴더 전체를 배포합니다. (FILES 대신 사용)",
)
@click.argument("files", nargs=-1, type=click.Path())
@click.pass_context
def deploy(ctx: click.Context, project, region, cluster, service, folder, files) -> None:  # noqa: ANN001
    """FILES(또는 --folder)를 빌드해 GKE 에 배포"""
    if folder and files:
        click.echo("[ERROR] FILES 와 --folder 는 함께 쓸 수 없습니다.", err=True)
        sys.exit(1)

    cfg = _load_or_exit(ctx, project)
    request = _build_request(
        cfg,
        project=project,
        region=region,
        cluster=cluster,
        service=service,
        files=(folder,) if folder else files,
    )

    try:
        report = Orchestrator(cfg).execute(request)
    except Exception as e:  # noqa: BLE001
        logger.exception("배포 중 오류 발생")
        click.echo(f"[ERROR] 배포 실패: {e}", err=True)
        sys.exit(1)

    click.echo(report.summary())

    if report.error is not None:
        click.echo(f"[ERROR] 배포 실패: {report.error}", err=True)
        sys.exit(1)

    click.echo(
        "Cloud Console: "
        f"https://console.cloud.google.com/kubernetes/workload/overview?project={request.project_id}"
    )
