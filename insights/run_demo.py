from __future__ import annotations
import argparse
import asyncio
import logging
from .config import SEED, RESTAURANT_COUNT, HISTORY_DAYS, DEFAULT_PROFILE, PREDICTION_PROFILES, EXPORT_DIR
from .clock import AsyncioClock
from .export import DATASETS, FORMATS, export_datasets, export_summary
from .metrics import overview_metrics
from .notifications import DEFAULT_TEMPLATE, NotificationSimulator
from .session import DashboardSession, PeriodicRefresher
from .storage import write_exports


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Synthetic delivery insights pipeline demo")
    p.add_argument("--count", type=int, default=RESTAURANT_COUNT)
    p.add_argument("--days", type=int, default=HISTORY_DAYS)
    p.add_argument("--seed", type=int, default=SEED)
    p.add_argument("--profile", choices=sorted(PREDICTION_PROFILES), default=DEFAULT_PROFILE)
    p.add_argument("--format", dest="fmt", choices=FORMATS, default="csv")
    p.add_argument("--speed", type=float, default=100.0, help="time acceleration for simulated delays")
    p.add_argument("--notify", type=int, default=10, help="how many validated restaurants get an SMS")
    p.add_argument("--out", default=str(EXPORT_DIR))
    p.add_argument("--verbose", action="store_true")
    return p.parse_args(argv)


async def run(args) -> int:
    clock = AsyncioClock(speed=args.speed)

    # 1) datos sintéticos + predicciones
    session = DashboardSession.create(args.count, args.days, args.profile, seed=args.seed, clock=clock)
    m = overview_metrics(session.restaurants, session.predictions)
    print("Restaurantes:", m["total_restaurants"], "| registros históricos:", len(session.historical))
    print("Pedidos previstos:", m["total_predicted_orders"], "| alto riesgo:", m["high_risk_count"])

    # 2) validación con umbrales por defecto
    v = session.validation
    print(f"Normales: {len(v.normal)} | inusuales: {len(v.unusual)} | validados: {len(v.validated)}")

    # 3) SMS simulados, con un refresh periódico corriendo en paralelo
    refresher = PeriodicRefresher(session, interval=2.0, clock=clock)
    refresher.start()
    targets = sorted(v.validated, key=lambda rid: int(rid.split("_")[1]))[:args.notify]
    sim = NotificationSimulator(clock=clock, rng=session.rng)
    summary = await sim.deploy(session.restaurants, session.predictions, DEFAULT_TEMPLATE, targets)
    await refresher.stop()
    print("✅ SMS:", summary.description, f"(refreshes durante el envío: {refresher.refresh_count})")
    if summary.messages:
        print("Ejemplo:", next(iter(summary.messages.values())))

    # 4) exportación
    files = export_datasets(DATASETS, args.fmt, session.restaurants, session.historical, session.predictions)
    paths = write_exports(files, args.out)
    print("✅", export_summary(files) + ":", ", ".join(str(p) for p in paths))
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
