"""
메시지 채널 관리 CLI 명령어

MessageChannelManagementUseCase를 CLI 명령으로 노출하는 어댑터입니다.
"""

import asyncio
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from adapters.db.database import initialize_database
from adapters.factory import get_adapter_factory
from core.domain.entities import ConnectedAccountProvider
from core.usecases.message_channel_management import DEFAULT_FOLDERS

# CLI 앱 생성
app = typer.Typer(name="channel", help="메시지 채널 관리 명령어")
console = Console()


@app.command("connect")
def connect_channel(
    handle: str = typer.Argument(..., help="메일 주소"),
    workspace_id: str = typer.Option(..., "--workspace", "-w", help="워크스페이스 ID"),
    refresh_token: Optional[str] = typer.Option(
        None, "--refresh-token", envvar="CONNECT_REFRESH_TOKEN", help="리프레시 토큰"
    ),
    provider: str = typer.Option("microsoft", help="제공자 (microsoft, google)"),
    folders: Optional[List[str]] = typer.Option(
        None, "--folder", "-f", help="동기화할 폴더 (여러 번 지정 가능, 기본: inbox)"
    ),
):
    """연결된 계정과 메시지 채널을 등록합니다."""

    try:
        provider_enum = ConnectedAccountProvider(provider)
    except ValueError:
        console.print("[red]오류: 잘못된 제공자입니다. (microsoft, google)[/red]")
        raise typer.Exit(1)

    async def _connect():
        factory = get_adapter_factory()
        db_adapter = initialize_database(factory.get_config())
        try:
            await db_adapter.initialize()
            async with db_adapter.get_session() as session:
                usecase = factory.create_message_channel_management_usecase(session)
                channel = await usecase.connect_channel(
                    workspace_id=workspace_id,
                    handle=handle,
                    refresh_token=refresh_token,
                    provider=provider_enum,
                    folders=folders or DEFAULT_FOLDERS,
                )

            console.print("[green]✓ 메시지 채널이 등록되었습니다![/green]")
            console.print(f"채널 ID: {channel.id}")
            console.print(f"연결된 계정 ID: {channel.connected_account_id}")
            console.print(f"폴더: {', '.join(folder.name for folder in channel.message_folders)}")
            console.print(f"단계: {channel.sync_stage.value}")
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)
        finally:
            await db_adapter.close()

    asyncio.run(_connect())


@app.command("list")
def list_channels(
    limit: int = typer.Option(20, help="조회할 채널 수"),
    skip: int = typer.Option(0, help="건너뛸 채널 수"),
):
    """등록된 메시지 채널 목록을 조회합니다."""

    async def _list():
        factory = get_adapter_factory()
        db_adapter = initialize_database(factory.get_config())
        try:
            await db_adapter.initialize()
            async with db_adapter.get_session() as session:
                usecase = factory.create_message_channel_management_usecase(session)
                channels = await usecase.list_channels(skip=skip, limit=limit)

            if not channels:
                console.print("[yellow]등록된 메시지 채널이 없습니다.[/yellow]")
                return

            table = Table(title=f"메시지 채널 목록 ({len(channels)}개)")
            table.add_column("ID", style="cyan")
            table.add_column("워크스페이스", style="blue")
            table.add_column("핸들", style="green")
            table.add_column("단계", style="magenta")
            table.add_column("상태", style="yellow")
            table.add_column("실패 횟수", style="red")

            for channel in channels:
                table.add_row(
                    channel.id,
                    channel.workspace_id,
                    channel.handle,
                    channel.sync_stage.value,
                    channel.sync_status.value,
                    str(channel.throttle_failure_count),
                )

            console.print(table)
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)
        finally:
            await db_adapter.close()

    asyncio.run(_list())


@app.command("show")
def show_channel(
    channel_id: str = typer.Argument(..., help="메시지 채널 ID"),
):
    """메시지 채널 상세 정보를 조회합니다."""

    async def _show():
        factory = get_adapter_factory()
        db_adapter = initialize_database(factory.get_config())
        try:
            await db_adapter.initialize()
            async with db_adapter.get_session() as session:
                usecase = factory.create_message_channel_management_usecase(session)
                channel = await usecase.get_channel(channel_id)

            if channel is None:
                console.print(f"[red]메시지 채널을 찾을 수 없습니다: {channel_id}[/red]")
                return

            console.print(f"[bold]메시지 채널 {channel.id}[/bold]")
            console.print(f"워크스페이스: {channel.workspace_id}")
            console.print(f"핸들: {channel.handle}")
            console.print(f"단계: {channel.sync_stage.value}")
            console.print(f"단계 시작: {channel.sync_stage_started_at or '-'}")
            console.print(f"상태: {channel.sync_status.value}")
            console.print(f"실패 횟수: {channel.throttle_failure_count}")
            console.print(f"동기화 활성화: {channel.is_sync_enabled}")
            if channel.connected_account:
                account = channel.connected_account
                console.print(f"연결된 계정: {account.id} ({account.provider.value})")
                console.print(f"인증 실패: {account.auth_failed_at or '-'}")

            table = Table(title="폴더")
            table.add_column("이름", style="green")
            table.add_column("외부 ID", style="cyan")
            table.add_column("델타 링크", style="yellow")
            for folder in channel.message_folders:
                table.add_row(folder.name, folder.external_id, "있음" if folder.sync_cursor else "없음")
            console.print(table)
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)
        finally:
            await db_adapter.close()

    asyncio.run(_show())
