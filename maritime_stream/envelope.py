"""
Wire envelope for telemetry frames.

Every frame is a JSON object {"type": <category>, "data": <payload>,
"timestamp": <ISO-8601>}. The category decides the payload shape, and both
directions reject a payload that does not have it.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class Category(str, Enum):
    VESSEL_UPDATE = "vessel_update"
    PORT_METRICS = "port_metrics"
    EQUIPMENT_DATA = "equipment_data"
    WEATHER_DATA = "weather_data"
    ALERT = "alert"  # declared for collaborators, never pushed by the server


CATEGORY_VALUES = frozenset(category.value for category in Category)

# Categories the server picks from on each periodic push
PUSH_CATEGORIES = (
    Category.VESSEL_UPDATE,
    Category.PORT_METRICS,
    Category.EQUIPMENT_DATA,
    Category.WEATHER_DATA,
)


class EnvelopeError(ValueError):
    """Base class for envelope problems."""


class ParseError(EnvelopeError):
    """Inbound frame is not a well-formed envelope."""


class ShapeError(EnvelopeError):
    """Payload does not match the shape its category requires."""


def iso_timestamp(when: Optional[datetime] = None) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix."""
    when = when or datetime.now(timezone.utc)
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc).replace(tzinfo=None)
    return when.isoformat(timespec="milliseconds") + "Z"


def _check_iso(value: str) -> str:
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"not an ISO-8601 timestamp: {value!r}") from None
    return value


IsoTimestamp = Annotated[str, AfterValidator(_check_iso)]


class Record(BaseModel):
    """Payload records keep unknown keys; only the listed fields are required."""

    model_config = ConfigDict(extra="allow")


# vessel_update

class Position(Record):
    longitude: float
    latitude: float


class Navigation(Record):
    courseOverGround: float
    speedOverGround: float
    heading: float
    rateOfTurn: float
    navigationStatus: int


class Dimensions(Record):
    length: float
    width: float
    draft: float


class VesselInfo(Record):
    imo: int
    name: str
    callsign: str
    type: int
    dimensions: Dimensions


class VesselRecord(Record):
    mmsi: int
    timestamp: str
    position: Position
    navigation: Navigation
    vesselInfo: VesselInfo
    destination: str
    eta: str


# port_metrics

class PortMetrics(Record):
    timestamp: str
    terminalId: str
    vesselProductivity: float
    berthUtilization: float
    yardUtilization: float
    craneUtilization: float
    truckTurnTime: float
    gateMoves: float
    dwellTime: float
    vesselWaitingTime: float


# equipment_data

class CraneLocation(Record):
    latitude: float
    longitude: float
    berth: str


class CraneOperational(Record):
    loadWeight: float
    boomAngle: float
    hookHeight: float
    trolleyPosition: float
    spreaderStatus: Literal["engaged", "disengaged"]


class CraneSensors(Record):
    motorTemperature: float
    hydraulicPressure: float
    vibrationLevel: float
    powerConsumption: float
    windSpeed: float


class CraneMaintenance(Record):
    operatingHours: float
    lastMaintenance: str
    nextMaintenance: str
    healthScore: float


class CraneAlert(Record):
    type: Literal["warning", "critical", "info"]
    message: str
    threshold: float
    currentValue: float


class CraneRecord(Record):
    craneId: str
    timestamp: str
    location: CraneLocation
    operational: CraneOperational
    sensors: CraneSensors
    maintenance: CraneMaintenance
    alerts: List[CraneAlert]


# weather_data

class WeatherLocation(Record):
    latitude: float
    longitude: float


class MarineConditions(Record):
    waveHeight: float
    waveDirection: float
    wavePeriod: float
    swellHeight: float
    swellDirection: float
    swellPeriod: float
    windWaveHeight: float
    windWaveDirection: float
    windWavePeriod: float


class OceanData(Record):
    seaSurfaceTemperature: float
    seaLevelHeight: float
    oceanCurrentVelocity: float
    oceanCurrentDirection: float


class Atmospheric(Record):
    windSpeed: float
    windDirection: float
    airPressure: float
    visibility: float
    precipitation: float


class WeatherRecord(Record):
    location: WeatherLocation
    timestamp: str
    marineConditions: MarineConditions
    oceanData: OceanData
    atmospheric: Atmospheric


# alert

class AlertRecord(Record):
    id: str
    type: Literal["info", "warning", "critical"]
    title: str
    message: str
    timestamp: str
    acknowledged: bool
    source: str


PAYLOAD_TYPES = {
    Category.VESSEL_UPDATE: List[VesselRecord],
    Category.PORT_METRICS: PortMetrics,
    Category.EQUIPMENT_DATA: List[CraneRecord],
    Category.WEATHER_DATA: WeatherRecord,
    Category.ALERT: AlertRecord,
}

PAYLOADS = {category: TypeAdapter(shape) for category, shape in PAYLOAD_TYPES.items()}


# Wire frames, discriminated on "type"

class VesselUpdateFrame(BaseModel):
    type: Literal["vessel_update"]
    data: List[VesselRecord]
    timestamp: IsoTimestamp


class PortMetricsFrame(BaseModel):
    type: Literal["port_metrics"]
    data: PortMetrics
    timestamp: IsoTimestamp


class EquipmentDataFrame(BaseModel):
    type: Literal["equipment_data"]
    data: List[CraneRecord]
    timestamp: IsoTimestamp


class WeatherDataFrame(BaseModel):
    type: Literal["weather_data"]
    data: WeatherRecord
    timestamp: IsoTimestamp


class AlertFrame(BaseModel):
    type: Literal["alert"]
    data: AlertRecord
    timestamp: IsoTimestamp


Frame = Annotated[
    Union[VesselUpdateFrame, PortMetricsFrame, EquipmentDataFrame, WeatherDataFrame, AlertFrame],
    Field(discriminator="type"),
]

FRAME = TypeAdapter(Frame)


class Envelope(BaseModel):
    """A decoded frame. `payload` is the JSON data exactly as it arrived."""

    model_config = ConfigDict(frozen=True)

    category: Category
    payload: Any
    generated_at: str


def describe_error(exc: ValidationError) -> str:
    """First validation problem as 'path: message'."""
    error = exc.errors()[0]
    path = ".".join(str(part) for part in error["loc"])
    return f"{path}: {error['msg']}" if path else error["msg"]


def check_shape(category, payload):
    """Raise ShapeError unless payload has the shape `category` requires."""
    category = Category(category)
    try:
        PAYLOADS[category].validate_python(payload)
    except ValidationError as e:
        raise ShapeError(f"{category.value}.{describe_error(e)}") from e


def encode(category, payload, generated_at: Union[datetime, str, None] = None) -> str:
    """Wrap payload in an envelope and serialize it to JSON text."""
    category = Category(category)
    check_shape(category, payload)
    if not isinstance(generated_at, str):
        generated_at = iso_timestamp(generated_at)
    return json.dumps({"type": category.value, "data": payload, "timestamp": generated_at})


def decode(frame: Union[str, bytes]) -> Envelope:
    """Parse one frame; raises ParseError for anything that is not a valid envelope."""
    if isinstance(frame, (bytes, bytearray)):
        try:
            frame = frame.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"frame is not UTF-8: {e}") from e
    if not isinstance(frame, str):
        raise ParseError(f"unsupported frame type {type(frame).__name__}")

    try:
        message = json.loads(frame)
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON: {e}") from e
    except RecursionError:
        raise ParseError("JSON nested too deeply") from None
    if not isinstance(message, dict):
        raise ParseError("envelope must be a JSON object")

    kind = message.get("type")
    if not isinstance(kind, str) or kind not in CATEGORY_VALUES:
        raise ParseError(f"unknown category {kind!r}")

    try:
        FRAME.validate_python(message)
    except ValidationError as e:
        raise ParseError(f"invalid {kind} frame: {describe_error(e)}") from e
    return Envelope(category=Category(kind), payload=message["data"], generated_at=message["timestamp"])
