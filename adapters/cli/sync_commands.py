"""
메시지 동기화 CLI 명령어

메시지 목록 가져오기 작업의 직접 실행, 큐 적재, 예약, 워커 실행 명령어입니다.
"""

import asyncio
from typing import Optional

import typer
from rich.console import Console

from adapters.db.database import initialize_database
from adapters.factory import get_adapter_factory
from adapters.worker.message_list_fetch_scheduler import MessageListFetchScheduler
from adapters.worker.message_queue_worker import MessageQueueWorker
from core.domain.entities import MessageListFetchJobData

# CLI 앱 생성
app = typer.Typer(name="sync", help="메시지 동기화 명령어")
console = Console()


@app.command("fetch")
def fetch_message_list(
    channel_id: str = typer.Argument(..., help="메시지 채널 ID"),
    workspace_id: str = typer.Option(..., "--workspace", "-w", help="워크스페이스 ID"),
):
    """큐를 거치지 않고 메시지 목록 가져오기 작업을 바로 실행합니다."""

    async def _fetch():
        factory = get_adapter_factory()
        db_adapter = initialize_database(factory.get_config())
        try:
            await db_adapter.initialize()
            async with db_adapter.get_session() as session:
                usecase = factory.create_message_list_fetch_usecase(session)
                await usecase.handle(
                    MessageListFetchJobData(message_channel_id=channel_id, workspace_id=workspace_id)
                )

                channel = await factory.create_message_channel_repository(session).find_by_id(
                    channel_id, with_relations=False
                )

            if channel is None:
                console.print(f"[yellow]메시지 채널을 찾을 수 없습니다: {channel_id}[/yellow]")
                return

            console.print("[green]✓ 작업 실행 완료[/green]")
            console.print(f"단계: {channel.sync_stage.value}")
            console.print(f"상태: {channel.sync_status.value}")
            console.print(f"실패 횟수: {channel.throttle_failure_count}")
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)
        finally:
            await db_adapter.close()

    asyncio.run(_fetch())


@app.command("enqueue")
def enqueue_message_list_fetch(
    channel_id: str = typer.Argument(..., help="메시지 채널 ID"),
    workspace_id: str = typer.Option(..., "--workspace", "-w", help="워크스페이스 ID"),
):
    """메시지 목록 가져오기 작업을 큐에 넣습니다."""

    async def _enqueue():
        factory = get_adapter_factory()
        db_adapter = initialize_database(factory.get_config())
        try:
            await db_adapter.initialize()
            async with db_adapter.get_session() as session:
                usecase = factory.create_message_list_fetch_cron_usecase(session)
                job = await usecase.enqueue_channel(channel_id, workspace_id)
            console.print(f"[green]✓ 작업이 추가되었습니다: {job.id}[/green]")
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)
        finally:
            await db_adapter.close()

    asyncio.run(_enqueue())


@app.command("cron")
def run_cron(
    interval: Optional[int] = typer.Option(
        None, "--interval", "-i", min=1, help="반복 간격(초), 지정하지 않으면 한 번만 실행"
    ),
):
    """가져오기 대기 중인 채널마다 작업을 큐에 넣습니다."""

    async def _cron_once():
        factory = get_adapter_factory()
        db_adapter = initialize_database(factory.get_config())
        try:
            await db_adapter.initialize()
            async with db_adapter.get_session() as session:
                usecase = factory.create_message_list_fetch_cron_usecase(session)
                jobs = await usecase.enqueue_pending_channels()
            console.print(f"[green]✓ 작업 {len(jobs)}개 추가[/green]")
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)
        finally:
            await db_adapter.close()

    async def _cron_scheduled():
        factory = get_adapter_factory()
        db_adapter = initialize_database(factory.get_config())
        await db_adapter.initialize()

        scheduler = MessageListFetchScheduler(db_adapter, factory, interval_seconds=interval)
        try:
            scheduler.start()
            console.print(f"[green]✓ 예약 스케줄러 시작: {interval}초 간격[/green]")
            await asyncio.Event().wait()
        finally:
            scheduler.shutdown()
            await db_adapter.close()

    if interval is None:
        asyncio.run(_cron_once())
        return

    try:
        asyncio.run(_cron_scheduled())
    except KeyboardInterrupt:
        console.print("[yellow]예약 작업을 종료합니다.[/yellow]")



@app.command("worker")
def run_worker(
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-c", help="동시 처리 작업 수"),
    drain: bool = typer.Option(False, "--drain", help="큐가 비면 종료"),
    with_cron: bool = typer.Option(
        False, "--with-cron", help="시작 시 대기 채널을 먼저 큐에 넣음 (메모리 큐와 함께 사용)"
    ),
):
    """큐의 메시지 목록 가져오기 작업을 처리합니다."""

    async def _worker():
        factory = get_adapter_factory()
        config = factory.get_config()
        db_adapter = initialize_database(config)
        try:
            await db_adapter.initialize()

            if with_cron:
                async with db_adapter.get_session() as session:
                    usecase = factory.create_message_list_fetch_cron_usecase(session)
                    await usecase.enqueue_pending_channels()

            worker = MessageQueueWorker(
                database_adapter=db_adapter,
                factory=factory,
                concurrency=concurrency or config.get_worker_concurrency(),
                poll_interval_seconds=config.get_worker_poll_interval_seconds(),
            )
            processed = await worker.run(drain=drain)
            console.print(f"[green]✓ 처리한 작업: {processed}개[/green]")
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)
        finally:
            await db_adapter.close()

    try:
        asyncio.run(_worker())
    except KeyboardInterrupt:
        console.print("[yellow]워커를 종료합니다.[/yellow]")
