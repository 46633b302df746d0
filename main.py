"""
메시지 채널 동기화 CLI

channel / sync / db 명령 그룹과 웹 서버 실행 명령을 묶습니다.
"""

import typer
from rich.console import Console
from rich.table import Table

from adapters.cli.channel_commands import app as channel_app
from adapters.cli.db_commands import app as db_app
from adapters.cli.sync_commands import app as sync_app
from config.adapters import get_config

__version__ = "1.0.0"

app = typer.Typer(
    name="message-sync",
    help="Microsoft 365 메시지 채널 동기화 시스템",
    no_args_is_help=True,
)
app.add_typer(channel_app, name="channel", help="메시지 채널 등록/조회")
app.add_typer(sync_app, name="sync", help="메시지 목록 가져오기 실행")
app.add_typer(db_app, name="db", help="데이터베이스 관리")

console = Console()


@app.command("serve")
def serve():
    """상태 조회/작업 적재 웹 서버를 실행합니다."""
    from web_server import run_server

    run_server()


@app.command("version")
def show_version():
    """버전을 표시합니다."""
    console.print(f"[bold]message-sync[/bold] {__version__}")


@app.command("config")
def show_config():
    """현재 환경의 설정 값을 표시합니다. 시크릿은 표시하지 않습니다."""
    try:
        config = get_config()
    except Exception as e:
        console.print(f"[red]설정 로드 실패: {str(e)}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"설정 ({config.get_environment()})")
    table.add_column("항목", style="cyan")
    table.add_column("값")

    rows = [
        ("디버그", config.is_debug()),
        ("데이터베이스 URL", config.get_database_url()),
        ("Azure 테넌트", config.get_azure_tenant_id()),
        ("로그 레벨", config.get_log_level()),
        ("큐 백엔드", config.get_queue_backend()),
        ("워커 동시 처리", config.get_worker_concurrency()),
        ("스로틀 기본/최대(초)", f"{config.get_throttle_duration_seconds()} / "
                             f"{config.get_throttle_max_duration_seconds()}"),
        ("최대 재시도", config.get_throttle_max_attempts()),
        ("Graph 페이지 크기", config.get_graph_page_size()),
        ("예약 배치 크기", config.get_cron_batch_size()),
    ]
    for name, value in rows:
        table.add_row(name, str(value))

    console.print(table)


if __name__ == "__main__":
    app()
