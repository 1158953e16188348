"""
Synthetic maritime telemetry.

Fabricates AIS vessel positions, terminal KPIs, quay crane sensor readings and
marine weather around a handful of major container ports. Values are plausible,
not statistically faithful.
"""

import random
from datetime import datetime, timedelta, timezone

from .envelope import Category, iso_timestamp

VESSEL_NAMES = [
    "MAERSK EDINBURGH", "EVER GIVEN", "MSC OSCAR", "OOCL HONG KONG",
    "COSCO SHIPPING UNIVERSE", "MADRID MAERSK", "HAPAG EXPRESS",
    "CMA CGM MARCO POLO", "ATLANTIC SAIL", "PACIFIC PIONEER",
]

# port -> (lat, lng)
PORT_COORDINATES = {
    "LOS_ANGELES": (33.7362, -118.2632),
    "SINGAPORE": (1.2897, 103.8517),
    "HAMBURG": (53.5511, 9.9937),
    "ROTTERDAM": (51.8985, 4.1250),
    "SHANGHAI": (31.2304, 121.4737),
}

# AIS ship type codes: fishing, tug, passenger, cargo, tanker, pleasure
VESSEL_TYPES = [30, 52, 60, 70, 80, 37]

HOME_PORT = PORT_COORDINATES["LOS_ANGELES"]
TERMINAL_ID = "TERM-001"

# Crane health thresholds
CRITICAL_HEALTH = 0.7
WARNING_HEALTH = 0.85

DEFAULT_VESSEL_COUNT = 50
DEFAULT_EQUIPMENT_COUNT = 10

DAY_MS = 24 * 60 * 60 * 1000


class MaritimeDataGenerator:
    """Produces payloads for each pushable category from an injectable RNG."""

    def __init__(self, rng=None):
        self.rng = rng if rng is not None else random.Random()

    def fork(self, seed=None):
        """A new generator with its own RNG, so consumers never share random state."""
        return type(self)(random.Random(seed))

    def produce(self, category, count=None):
        """Return the payload for `category`; `count` sizes the batch categories."""
        category = Category(category)
        if category is Category.VESSEL_UPDATE:
            return self.generate_ais_data(DEFAULT_VESSEL_COUNT if count is None else count)
        if category is Category.PORT_METRICS:
            return self.generate_port_metrics()
        if category is Category.EQUIPMENT_DATA:
            return self.generate_equipment_data(DEFAULT_EQUIPMENT_COUNT if count is None else count)
        if category is Category.WEATHER_DATA:
            return self.generate_weather_data()
        raise ValueError(f"no producer for category {category.value!r}")

    def _now(self):
        return datetime.now(timezone.utc)

    def _offset(self, max_ms, sign=1):
        """Now shifted by a random amount up to max_ms."""
        return self._now() + timedelta(milliseconds=sign * self.rng.random() * max_ms)

    def generate_ais_data(self, count=DEFAULT_VESSEL_COUNT):
        """AIS position reports scattered around the known ports."""
        rng = self.rng
        ports = list(PORT_COORDINATES.values())
        vessels = []
        for i in range(count):
            lat, lng = ports[i % len(ports)]
            eta = iso_timestamp(self._offset(7 * DAY_MS))
            vessels.append({
                "mmsi": 200000000 + int(rng.random() * 99999999),
                "timestamp": iso_timestamp(),
                "position": {
                    "longitude": lng + (rng.random() - 0.5) * 0.2,
                    "latitude": lat + (rng.random() - 0.5) * 0.2,
                },
                "navigation": {
                    "courseOverGround": rng.random() * 360,  # degrees
                    "speedOverGround": rng.random() * 25,  # knots
                    "heading": int(rng.random() * 360),
                    "rateOfTurn": int(rng.random() * 255) - 128,
                    "navigationStatus": int(rng.random() * 16),
                },
                "vesselInfo": {
                    "imo": 9000000 + int(rng.random() * 999999),
                    "name": VESSEL_NAMES[i % len(VESSEL_NAMES)],
                    "callsign": f"ABC{i:03d}",
                    "type": rng.choice(VESSEL_TYPES),
                    "dimensions": {
                        "length": 150 + rng.random() * 250,  # meters
                        "width": 20 + rng.random() * 30,
                        "draft": 5 + rng.random() * 10,
                    },
                },
                "destination": rng.choice(list(PORT_COORDINATES)),
                "eta": eta[5:16].replace("T", " "),  # "MM-DD HH:MM"
            })
        return vessels

    def generate_port_metrics(self):
        """One terminal KPI snapshot."""
        rng = self.rng
        return {
            "timestamp": iso_timestamp(),
            "terminalId": TERMINAL_ID,
            "vesselProductivity": 40 + rng.random() * 20,  # moves/hour
            "berthUtilization": 0.7 + rng.random() * 0.2,
            "yardUtilization": 0.6 + rng.random() * 0.2,
            "craneUtilization": 0.7 + rng.random() * 0.2,
            "truckTurnTime": 20 + rng.random() * 25,  # minutes
            "gateMoves": 2000 + rng.random() * 1000,  # per day
            "dwellTime": 2 + rng.random() * 3,  # days
            "vesselWaitingTime": 1 + rng.random() * 3,  # hours
        }

    def generate_equipment_data(self, count=DEFAULT_EQUIPMENT_COUNT):
        """Quay crane readings with health-derived alerts."""
        rng = self.rng
        lat, lng = HOME_PORT
        equipment = []
        for i in range(count):
            health_score = 0.5 + rng.random() * 0.5
            alerts = []
            if health_score < CRITICAL_HEALTH:
                alerts.append({
                    "type": "critical",
                    "message": "Equipment requires immediate maintenance",
                    "threshold": CRITICAL_HEALTH,
                    "currentValue": health_score,
                })
            elif health_score < WARNING_HEALTH:
                alerts.append({
                    "type": "warning",
                    "message": "Schedule maintenance soon",
                    "threshold": WARNING_HEALTH,
                    "currentValue": health_score,
                })

            equipment.append({
                "craneId": f"QC-{i + 1:03d}",
                "timestamp": iso_timestamp(),
                "location": {
                    "latitude": lat + (rng.random() - 0.5) * 0.01,
                    "longitude": lng + (rng.random() - 0.5) * 0.01,
                    "berth": f"B-{i + 1}",
                },
                "operational": {
                    "loadWeight": rng.random() * 50,  # tons
                    "boomAngle": 20 + rng.random() * 40,  # degrees
                    "hookHeight": 10 + rng.random() * 40,  # meters
                    "trolleyPosition": rng.random() * 30,
                    "spreaderStatus": "engaged" if rng.random() > 0.5 else "disengaged",
                },
                "sensors": {
                    "motorTemperature": 60 + rng.random() * 30,  # celsius
                    "hydraulicPressure": 150 + rng.random() * 50,  # PSI
                    "vibrationLevel": rng.random() * 5,  # g
                    "powerConsumption": 100 + rng.random() * 100,  # kW
                    "windSpeed": rng.random() * 20,  # m/s
                },
                "maintenance": {
                    "operatingHours": rng.random() * 2000,
                    "lastMaintenance": iso_timestamp(self._offset(30 * DAY_MS, sign=-1)),
                    "nextMaintenance": iso_timestamp(self._offset(30 * DAY_MS)),
                    "healthScore": health_score,
                },
                "alerts": alerts,
            })
        return equipment

    def generate_weather_data(self):
        """Marine weather at the home port."""
        rng = self.rng
        lat, lng = HOME_PORT
        return {
            "location": {"latitude": lat, "longitude": lng},
            "timestamp": iso_timestamp(),
            "marineConditions": {
                "waveHeight": 0.5 + rng.random() * 2.5,
                "waveDirection": rng.random() * 360,
                "wavePeriod": 5 + rng.random() * 10,
                "swellHeight": 0.3 + rng.random() * 1.7,
                "swellDirection": rng.random() * 360,
                "swellPeriod": 8 + rng.random() * 12,
                "windWaveHeight": 0.2 + rng.random() * 1.3,
                "windWaveDirection": rng.random() * 360,
                "windWavePeriod": 4 + rng.random() * 8,
            },
            "oceanData": {
                "seaSurfaceTemperature": 15 + rng.random() * 10,
                "seaLevelHeight": -0.5 + rng.random(),
                "oceanCurrentVelocity": 0.1 + rng.random() * 1.9,
                "oceanCurrentDirection": rng.random() * 360,
            },
            "atmospheric": {
                "windSpeed": rng.random() * 25,
                "windDirection": rng.random() * 360,
                "airPressure": 1000 + rng.random() * 30,  # hPa
                "visibility": 5000 + rng.random() * 10000,  # meters
                "precipitation": rng.random() * 10,  # mm/hour
            },
        }
