from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _fmt(value: Any, digits: int = 1) -> Any:
    if isinstance(value, float):
        return f"{value:.{digits}f}"
    return value


def render_snapshot(payload: Dict[str, Any]) -> None:
    echo_heading("Plant Overview")
    overview = payload.get("plant_overview") or {}
    echo_key_values(
        [
            ("source", payload.get("source")),
            ("record_index", payload.get("record_index")),
            ("generated_at", payload.get("generated_at")),
            ("overall_efficiency", _fmt(overview.get("overall_efficiency"))),
            ("production_rate", _fmt(overview.get("production_rate_current"), 0)),
            ("energy_consumption", _fmt(overview.get("energy_consumption_current"))),
            ("quality_score", _fmt(overview.get("quality_score_avg"))),
            (
                "equipment_running",
                f"{overview.get('equipment_running_count')}/{overview.get('equipment_total_count')}",
            ),
            ("active_alerts", overview.get("active_alerts_count")),
        ]
    )

    sensors = payload.get("recent_sensors") or []
    typer.echo()
    echo_heading("Sensors")
    if sensors:
        for reading in sensors:
            typer.echo(
                f"  - {reading.get('sensor_id')}: {_fmt(reading.get('value'))} {reading.get('unit')}"
            )
    else:
        typer.echo("No sensor readings available.")


def render_status(payload: Dict[str, Any]) -> None:
    echo_heading("Data Source")
    echo_key_values(
        [
            ("data_source", payload.get("data_source")),
            ("real_data_enabled", payload.get("real_data_enabled")),
            ("record_count", payload.get("record_count")),
            ("current_index", payload.get("current_index")),
        ]
    )


def render_answer(payload: Dict[str, Any]) -> None:
    echo_heading("Assistant")
    typer.echo(payload.get("response") or "")
    typer.echo()
    echo_key_values(
        [
            ("confidence", payload.get("confidence")),
            ("context_used", ", ".join(payload.get("context_used") or [])),
        ]
    )
    recommendations = payload.get("recommendations") or []
    if recommendations:
        typer.echo("recommendations:")
        for item in recommendations:
            typer.echo(f"  - {item}")
