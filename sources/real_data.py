"""Recorded plant data used for replay, and its mapping onto snapshots."""

from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from models.records import (
    ChemicalComposition,
    DashboardSnapshot,
    DataMode,
    EnvironmentalData,
    EquipmentState,
    PlantOverview,
    ProcessParameters,
    QualityMetrics,
    RealPlantRecord,
    SensorReading,
    SensorType,
)
from simulation.generator import (
    CLINKER_TEMPERATURE_OFFSET,
    ENERGY_TARGET,
    RAW_MEAL_RATIO,
    SnapshotGenerator,
)

logger = logging.getLogger(__name__)

SUPPORTED_KINDS = ("sample", "csv")

_NUMERIC_COLUMNS = tuple(
    field.name for field in fields(RealPlantRecord) if field.name != "timestamp"
)
_REQUIRED_COLUMNS = ("timestamp",) + _NUMERIC_COLUMNS

# (timestamp, kiln_temperature, kiln_pressure, raw_mill_power, cement_mill_power,
#  production_rate, compressive_strength, fineness, co2_emissions, energy_consumption)
_SAMPLE_ROWS: Tuple[Tuple, ...] = (
    ("2024-01-01T00:00:00Z", 1450.5, -12.3, 2850, 3150, 1850, 42.5, 365, 875, 95.2),
    ("2024-01-01T00:05:00Z", 1452.1, -11.8, 2890, 3180, 1870, 43.1, 358, 878, 94.8),
    ("2024-01-01T00:10:00Z", 1448.7, -13.1, 2820, 3120, 1820, 41.9, 372, 882, 96.1),
    ("2024-01-01T00:15:00Z", 1455.3, -10.9, 2910, 3200, 1895, 44.2, 351, 869, 93.7),
    ("2024-01-01T00:20:00Z", 1451.8, -12.7, 2875, 3165, 1860, 42.8, 363, 873, 95.5),
    ("2024-01-01T00:25:00Z", 1453.4, -11.5, 2895, 3185, 1885, 43.5, 356, 871, 94.3),
    ("2024-01-01T00:30:00Z", 1449.9, -13.4, 2835, 3135, 1835, 42.1, 369, 885, 96.8),
    ("2024-01-01T00:35:00Z", 1456.2, -10.6, 2925, 3210, 1905, 44.8, 348, 865, 93.2),
    ("2024-01-01T00:40:00Z", 1452.7, -12.1, 2885, 3175, 1875, 43.3, 361, 876, 95.1),
    ("2024-01-01T00:45:00Z", 1450.3, -12.9, 2860, 3155, 1850, 42.6, 367, 880, 95.9),
)

SAMPLE_RECORDS: Tuple[RealPlantRecord, ...] = tuple(
    RealPlantRecord(row[0], *(float(value) for value in row[1:])) for row in _SAMPLE_ROWS
)


def load_real_records(kind: str, path: Optional[str] = None) -> List[RealPlantRecord]:
    """Build the finite record sequence for ``kind``.

    ``sample`` returns the built-in recording; ``csv`` parses ``path``.
    """
    if kind == "sample":
        return list(SAMPLE_RECORDS)
    if kind == "csv":
        if not path:
            raise ValueError("A CSV path is required for the 'csv' data type.")
        csv_path = Path(path)
        if not csv_path.is_file():
            raise ValueError(f"CSV file {path!r} does not exist.")
        return parse_records_csv(csv_path.read_text(encoding="utf-8-sig"))
    raise ValueError('Unsupported data type. Use "sample" for demo data or "csv" with a path.')


def parse_records_csv(text: str) -> List[RealPlantRecord]:
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ValueError("CSV file is missing a header row.")

    normalized = {name.lstrip("\ufeff").lower().strip(): name for name in reader.fieldnames}
    missing = [column for column in _REQUIRED_COLUMNS if column not in normalized]
    if missing:
        raise ValueError(f"CSV missing required columns: {', '.join(missing)}")

    records: List[RealPlantRecord] = []
    for row_number, row in enumerate(reader, start=2):
        timestamp_raw = (row.get(normalized["timestamp"]) or "").strip()
        if not timestamp_raw:
            logger.warning(
                "Skipping recorded row", extra={"record_index": row_number, "reason": "missing timestamp"}
            )
            continue

        values: Dict[str, float] = {}
        for column in _NUMERIC_COLUMNS:
            raw = (row.get(normalized[column]) or "").strip()
            try:
                parsed = float(raw)
            except ValueError:
                break
            if not math.isfinite(parsed):
                break
            values[column] = parsed
        else:
            records.append(RealPlantRecord(timestamp=timestamp_raw, **values))
            continue

        logger.warning(
            "Skipping recorded row",
            extra={"record_index": row_number, "reason": f"invalid numeric value in {column}"},
        )

    if not records:
        raise ValueError("CSV file contains no valid records.")
    return records


def snapshot_from_record(
    record: RealPlantRecord,
    index: int,
    generator: SnapshotGenerator,
    now: Optional[datetime] = None,
) -> DashboardSnapshot:
    """Map a recorded row onto a snapshot.

    Fields the recording lacks get fixed plant-typical values; equipment status
    is still simulated.
    """
    timestamp = now or datetime.now(timezone.utc)
    strength = record.compressive_strength
    quality_score = min(95.0, strength * 2)

    sensors = (
        _reading(timestamp, "KILN_TEMP_01", record.kiln_temperature, "°C", "Kiln Burning Zone", SensorType.temperature),
        _reading(timestamp, "KILN_PRESSURE_01", record.kiln_pressure, "kPa", "Kiln Inlet", SensorType.pressure),
        _reading(timestamp, "RAW_MILL_POWER_01", record.raw_mill_power, "kW", "Raw Mill", SensorType.power),
        _reading(timestamp, "CEMENT_MILL_POWER_01", record.cement_mill_power, "kW", "Cement Mill", SensorType.power),
        _reading(timestamp, "PRODUCTION_FLOW_01", record.production_rate, "TPH", "Cement Silo", SensorType.flow),
        _reading(timestamp, "FINENESS_01", record.fineness, "m²/kg", "Quality Control Lab", SensorType.flow),
    )

    parameters = ProcessParameters(
        timestamp=timestamp,
        kiln_temperature=record.kiln_temperature,
        kiln_pressure=record.kiln_pressure,
        raw_mill_power=record.raw_mill_power,
        cement_mill_power=record.cement_mill_power,
        production_rate=record.production_rate,
        energy_consumption=record.energy_consumption,
        alternative_fuel_rate=25.0,
        raw_meal_flow=record.production_rate * RAW_MEAL_RATIO,
        cement_fineness=record.fineness,
        clinker_temperature=record.kiln_temperature - CLINKER_TEMPERATURE_OFFSET,
        exhaust_fan_speed=500.0,
        preheater_temperature=record.kiln_temperature - 1100.0,
    )

    quality = QualityMetrics(
        timestamp=timestamp,
        sample_id=f"REAL_{index}_{int(timestamp.timestamp() * 1000)}",
        blaine_fineness=record.fineness,
        compressive_strength_3d=strength * 0.5,
        compressive_strength_28d=strength,
        setting_time_initial=75.0,
        setting_time_final=270.0,
        quality_score=quality_score,
        defect_count=1,
        consistency=97.5,
        chemical_composition=ChemicalComposition(
            c3s=60.0, c2s=20.0, c3a=10.0, c4af=10.0, so3=3.0, free_lime=1.0
        ),
    )

    environmental = EnvironmentalData(
        timestamp=timestamp,
        co2_emissions=record.co2_emissions,
        nox_emissions=650.0,
        so2_emissions=120.0,
        dust_emissions=25.0,
        energy_consumption_specific=record.energy_consumption,
        alternative_fuel_substitution=25.0,
        waste_heat_recovery=record.production_rate * 25,
        water_consumption=300.0,
    )

    equipment = tuple(generator.generate_equipment_status())
    overview = PlantOverview(
        timestamp=timestamp,
        overall_efficiency=min(95.0, 100.0 - (record.energy_consumption - ENERGY_TARGET) * 2),
        production_rate_current=record.production_rate,
        production_rate_target=generator.config.plant_capacity,
        energy_consumption_current=record.energy_consumption,
        energy_consumption_target=ENERGY_TARGET,
        quality_score_avg=quality_score,
        active_alerts_count=sum(len(unit.alerts) for unit in equipment),
        equipment_running_count=sum(
            1 for unit in equipment if unit.status is EquipmentState.running
        ),
        equipment_total_count=len(equipment),
        environmental_compliance=True,
    )

    return DashboardSnapshot(
        generated_at=timestamp,
        source=DataMode.real,
        plant_overview=overview,
        recent_sensors=sensors,
        current_parameters=parameters,
        recent_quality=(quality,),
        equipment_status=equipment,
        environmental_data=environmental,
        record_index=index,
    )


def _reading(
    timestamp: datetime,
    sensor_id: str,
    value: float,
    unit: str,
    location: str,
    sensor_type: SensorType,
) -> SensorReading:
    return SensorReading(
        timestamp=timestamp,
        sensor_id=sensor_id,
        value=value,
        unit=unit,
        location=location,
        sensor_type=sensor_type,
    )
