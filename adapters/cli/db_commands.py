"""
데이터베이스 관리 CLI 명령어

데이터베이스 초기화, 리셋과 동기화 관련 테이블 조회 명령어입니다.
"""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy import text

from adapters.db.database import initialize_database
from config.adapters import get_config

# CLI 앱 생성
app = typer.Typer(name="db", help="데이터베이스 관리 명령어")
console = Console()


def _short(value: Optional[str], length: int = 8) -> str:
    if not value:
        return "-"
    return value[:length] + "..." if len(value) > length else value


@app.command("init")
def init_database():
    """데이터베이스를 초기화합니다."""

    async def _init():
        db_adapter = initialize_database(get_config())
        try:
            console.print("[blue]데이터베이스 초기화 시작...[/blue]")
            await db_adapter.initialize()
            await db_adapter.create_tables()
            console.print("[green]✓ 데이터베이스 초기화가 완료되었습니다![/green]")
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)
        finally:
            await db_adapter.close()

    asyncio.run(_init())


@app.command("reset")
def reset_database(
    yes: bool = typer.Option(False, "--yes", "-y", help="확인 없이 진행"),
):
    """데이터베이스를 리셋합니다. (모든 데이터 삭제)"""

    if not yes and not typer.confirm("모든 데이터가 삭제됩니다. 계속하시겠습니까?"):
        console.print("[yellow]취소되었습니다.[/yellow]")
        return

    async def _reset():
        db_adapter = initialize_database(get_config())
        try:
            console.print("[blue]데이터베이스 리셋 시작...[/blue]")
            await db_adapter.initialize()
            await db_adapter.drop_tables()
            await db_adapter.create_tables()
            console.print("[green]✓ 데이터베이스 리셋이 완료되었습니다![/green]")
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)
        finally:
            await db_adapter.close()

    asyncio.run(_reset())


@app.command("channels")
def show_channels():
    """메시지 채널 테이블의 내용을 조회합니다."""

    async def _show_channels():
        db_adapter = initialize_database(get_config())
        try:
            await db_adapter.initialize()
            async with db_adapter.get_session() as session:
                result = await session.execute(text("""
                    SELECT mc.id, mc.handle, mc.sync_stage, mc.sync_status,
                           mc.throttle_failure_count, mc.sync_stage_started_at, ca.auth_failed_at
                    FROM message_channels mc
                    JOIN connected_accounts ca ON mc.connected_account_id = ca.id
                    ORDER BY mc.created_at
                """))
                channels = result.fetchall()

            if not channels:
                console.print("[yellow]메시지 채널 테이블이 비어있습니다.[/yellow]")
                return

            table = Table(title="메시지 채널 테이블")
            table.add_column("ID", style="cyan")
            table.add_column("핸들", style="green")
            table.add_column("단계", style="magenta")
            table.add_column("상태", style="yellow")
            table.add_column("실패 횟수", style="red")
            table.add_column("단계 시작", style="dim")
            table.add_column("인증 실패", style="red")

            for channel in channels:
                table.add_row(
                    _short(channel.id),
                    channel.handle,
                    channel.sync_stage,
                    channel.sync_status,
                    str(channel.throttle_failure_count),
                    str(channel.sync_stage_started_at or "-"),
                    str(channel.auth_failed_at or "-"),
                )

            console.print(table)
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)
        finally:
            await db_adapter.close()

    asyncio.run(_show_channels())


@app.command("events")
def show_events(
    limit: int = typer.Option(50, "--limit", "-l", help="조회할 이벤트 수"),
    channel_id: Optional[str] = typer.Option(None, "--channel", "-c", help="채널 ID로 필터"),
):
    """모니터링 이벤트를 최신순으로 조회합니다."""

    async def _show_events():
        db_adapter = initialize_database(get_config())
        try:
            await db_adapter.initialize()
            query = "SELECT * FROM monitoring_events"
            params = {"limit": limit}
            if channel_id:
                query += " WHERE message_channel_id = :channel_id"
                params["channel_id"] = channel_id
            query += " ORDER BY id DESC LIMIT :limit"

            async with db_adapter.get_session() as session:
                result = await session.execute(text(query), params)
                events = result.fetchall()

            if not events:
                console.print("[yellow]모니터링 이벤트가 없습니다.[/yellow]")
                return

            table = Table(title="모니터링 이벤트")
            table.add_column("시간", style="dim")
            table.add_column("이벤트", style="green")
            table.add_column("채널", style="cyan")
            table.add_column("메시지", style="yellow")

            for event in events:
                table.add_row(
                    str(event.created_at),
                    event.event_name,
                    _short(event.message_channel_id),
                    event.message or "-",
                )

            console.print(table)
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)
        finally:
            await db_adapter.close()

    asyncio.run(_show_events())


@app.command("jobs")
def show_jobs(
    status: Optional[str] = typer.Option(None, "--status", "-s", help="작업 상태로 필터"),
    limit: int = typer.Option(50, "--limit", "-l", help="조회할 작업 수"),
):
    """메시지 큐 작업을 조회합니다."""

    async def _show_jobs():
        db_adapter = initialize_database(get_config())
        try:
            await db_adapter.initialize()
            query = "SELECT * FROM message_queue_jobs"
            params = {"limit": limit}
            if status:
                query += " WHERE status = :status"
                params["status"] = status
            query += " ORDER BY created_at DESC LIMIT :limit"

            async with db_adapter.get_session() as session:
                result = await session.execute(text(query), params)
                jobs = result.fetchall()

            if not jobs:
                console.print("[yellow]큐 작업이 없습니다.[/yellow]")
                return

            table = Table(title="메시지 큐 작업")
            table.add_column("ID", style="cyan")
            table.add_column("작업", style="green")
            table.add_column("상태", style="yellow")
            table.add_column("시도", style="magenta")
            table.add_column("오류", style="red")
            table.add_column("생성일", style="dim")

            for job in jobs:
                table.add_row(
                    _short(job.id),
                    job.job_name,
                    job.status,
                    str(job.attempts),
                    job.error_message or "-",
                    str(job.created_at),
                )

            console.print(table)
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)
        finally:
            await db_adapter.close()

    asyncio.run(_show_jobs())


if __name__ == "__main__":
    app()
