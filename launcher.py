"""Command-line launcher: API server and one-shot job commands."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Awaitable, Callable

import config
from core.cancellation import CancellationController
from core.dashboard import DashboardAggregator
from core.errors import JobTrackingError
from core.kernel import Kernel, create_default_kernel
from core.poller import ProgressPoller
from core.sequential import SequentialProgressAggregator
from core.trigger import JobTrigger
from core.types import DashboardView, ProgressSnapshot, SequentialSnapshot
from core.validation import coerce_date_range
from utils.formatting import describe_snapshot, format_estimated_time


def _print_title() -> None:
    print()
    print("==========================================")
    print(" NAV Job Tracker")
    print("==========================================")
    print()


def _print_snapshot(snapshot: ProgressSnapshot | SequentialSnapshot) -> None:
    print(f"  {describe_snapshot(snapshot)}")


def _print_failures(snapshot: ProgressSnapshot | SequentialSnapshot) -> None:
    if isinstance(snapshot, SequentialSnapshot):
        errors = [error for chunk in snapshot.per_chunk for error in chunk.errors]
    else:
        errors = snapshot.errors
    limit = config.UNIT_ERROR_DISPLAY_LIMIT
    for error in errors[:limit]:
        print(f"    - {error.unit_key or '?'}: {error.message}")
    if len(errors) > limit:
        print(f"    ... y {len(errors) - limit} errores más")


async def _watch(kernel: Kernel, job_id: int, sequential: bool) -> None:
    api = kernel["jobs"]
    tracker: ProgressPoller | SequentialProgressAggregator = (
        SequentialProgressAggregator(api) if sequential else ProgressPoller(api)
    )
    async with tracker:
        final = await tracker.start(job_id, on_progress=_print_snapshot)
    print(f"Job {job_id} terminó: {describe_snapshot(final)}")
    _print_failures(final)


async def run_daily(kernel: Kernel, watch: bool) -> None:
    result = await JobTrigger(kernel["jobs"]).trigger_daily()
    if not result.has_job:
        print(result.message or "Los datos de hoy ya están disponibles; nada que descargar.")
        return
    state = "ya existía" if result.already_exists else "iniciado"
    print(f"Descarga diaria {state}: job {result.job_id}")
    if watch:
        await _watch(kernel, result.job_id, sequential=False)


async def run_historical(kernel: Kernel, start: str, end: str, watch: bool, sequential: bool) -> None:
    date_range = coerce_date_range(start, end)
    result = await JobTrigger(kernel["jobs"]).trigger_historical(date_range)
    print(f"Descarga histórica {date_range.start}..{date_range.end}: job {result.job_id}")
    if result.estimated_time_ms is not None:
        print(f"  Tiempo estimado: {format_estimated_time(result.estimated_time_ms)}")
    if watch:
        await _watch(kernel, result.job_id, sequential=sequential)


async def run_cancel(kernel: Kernel, job_id: int) -> None:
    if await CancellationController(kernel["jobs"]).cancel(job_id):
        print(f"Cancelación solicitada para el job {job_id}.")
    else:
        print(f"El job {job_id} ya estaba cancelado o terminado.")


def _print_dashboard(view: DashboardView) -> None:
    if view.statistics is not None:
        stats = view.statistics
        print(
            f"Esquemas: {stats.total_schemes_tracked}  Registros NAV: {stats.total_nav_records}  "
            f"Último NAV: {stats.latest_nav_date or '-'}"
        )
    if view.today_status is not None:
        print(f"Hoy: {view.today_status.message or view.today_status.data_available}")
    print(f"Jobs activos: {len(view.active_jobs)}")
    for snapshot in view.active_jobs:
        _print_snapshot(snapshot)
    print(f"Historial: {len(view.jobs_list)} jobs, marcadores: {len(view.bookmarks)}")
    for name, message in view.errors.items():
        print(f"  [WARN] {name}: {message}")


async def run_dashboard(kernel: Kernel) -> None:
    async with DashboardAggregator(kernel["jobs"], kernel["nav"]) as dashboard:
        _print_dashboard(await dashboard.refresh_all())


async def _with_kernel(action: Callable[[Kernel], Awaitable[None]]) -> None:
    kernel = create_default_kernel()
    try:
        await action(kernel)
    finally:
        await kernel.close()


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"id inválido: {value!r}") from None
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"id inválido: {value!r}")
    return parsed


def _parse_cli_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="python -m launcher")
    commands = parser.add_subparsers(dest="command")

    serve = commands.add_parser("serve", help="inicia la API web")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    daily = commands.add_parser("daily", help="dispara la descarga diaria")
    daily.add_argument("--no-watch", action="store_true")

    historical = commands.add_parser("historical", help="dispara una descarga histórica")
    historical.add_argument("start", help="fecha inicial (YYYY-MM-DD)")
    historical.add_argument("end", help="fecha final (YYYY-MM-DD)")
    historical.add_argument("--no-watch", action="store_true")
    historical.add_argument("--single", action="store_true", help="no usar progreso por chunks")

    watch = commands.add_parser("watch", help="sigue el progreso de un job")
    watch.add_argument("job_id", type=_positive_int)
    watch.add_argument("--sequential", action="store_true")

    cancel = commands.add_parser("cancel", help="cancela un job")
    cancel.add_argument("job_id", type=_positive_int)

    commands.add_parser("dashboard", help="muestra el resumen del dashboard")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    from web.server import configure_logging, run_server

    args = _parse_cli_args(sys.argv[1:] if argv is None else argv)
    configure_logging()
    command = args.command or "serve"

    if command == "serve":
        _print_title()
        run_server(getattr(args, "host", None), getattr(args, "port", None))
        return 0

    dispatch: dict[str, Callable[[Kernel], Awaitable[None]]] = {
        "daily": lambda kernel: run_daily(kernel, watch=not args.no_watch),
        "historical": lambda kernel: run_historical(
            kernel, args.start, args.end, watch=not args.no_watch, sequential=not args.single
        ),
        "watch": lambda kernel: _watch(kernel, args.job_id, args.sequential),
        "cancel": lambda kernel: run_cancel(kernel, args.job_id),
        "dashboard": run_dashboard,
    }

    try:
        asyncio.run(_with_kernel(dispatch[command]))
        return 0
    except KeyboardInterrupt:
        print("\nCancelado por el usuario.")
        return 1
    except JobTrackingError as exc:
        print(f"\nERROR: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
