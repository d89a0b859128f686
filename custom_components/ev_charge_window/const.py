DOMAIN = "ev_charge_window"

PLATFORMS = ["sensor", "number", "switch"]

SERVICE_REFRESH = "refresh"
ATTR_ENTRY_ID = "entry_id"
ATTR_FORCE = "force"

# Config entry data keys
CONF_NAME = "name"
CONF_ESIOS_TOKEN = "esios_token"

# Option keys (entity-backed)
OPT_BATTERY_KWH = "battery_kwh"
OPT_CHARGER_POWER_KW = "charger_power_kw"
OPT_START_SOC = "start_soc"
OPT_TARGET_SOC = "target_soc"
OPT_PLAN_TOMORROW = "plan_tomorrow"
OPT_MANUAL_PRICE = "manual_price"

DEFAULTS = {
    OPT_BATTERY_KWH: 10.0,
    OPT_CHARGER_POWER_KW: 3.7,
    OPT_START_SOC: 0.0,
    OPT_TARGET_SOC: 100.0,
    OPT_PLAN_TOMORROW: False,
    OPT_MANUAL_PRICE: 0.10,  # €/kWh, flat-rate estimate
}

# Planner
HOURS_PER_DAY = 24
NIGHT_START_LIMIT = 5  # night windows must start by 05:00 to finish in the morning
ALTERNATIVE_MIN_SEPARATION = 2

LABEL_CHEAPEST = "cheapest"
LABEL_NIGHT = "night"
LABEL_ALTERNATIVE = "alternative"

OPTION_NAMES = {
    LABEL_CHEAPEST: "Cheapest",
    LABEL_NIGHT: "Night (off-peak)",
    LABEL_ALTERNATIVE: "Alternative",
}

# Price source
PROVENANCE_LIVE = "live"
PROVENANCE_ESTIMATED = "estimated"

SOURCE_ESIOS = "esios"
SOURCE_MIRROR = "mirror"
SOURCE_ESTIMATE = "estimate"

ESIOS_BASE_URL = "https://api.esios.ree.es/indicators"
ESIOS_INDICATOR_PVPC = "1001"  # PVPC 2.0TD
GEO_ID_PENINSULA = 8741
MARKET_TIMEZONE = "Europe/Madrid"  # ESIOS hour indices are Spanish local time
MIRROR_URL = "https://api.allorigins.win/get"
REQUEST_TIMEOUT_S = 10

DEFAULT_GAP_PRICE = 0.15  # €/kWh, used when the first hour of a day is missing

# Typical PVPC shape (€/kWh), used when no live data can be fetched
FALLBACK_PRICES = [
    0.08, 0.07, 0.06, 0.05, 0.05, 0.06, 0.08, 0.12,  # 00-07
    0.15, 0.18, 0.22, 0.20, 0.18, 0.15, 0.12, 0.11,  # 08-15
    0.12, 0.15, 0.20, 0.24, 0.25, 0.22, 0.15, 0.10,  # 16-23
]

UPDATE_INTERVAL_MIN = 30
