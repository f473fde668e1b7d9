"""Shared constants and defaults."""

# Well-known mints
SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

# Largest token precision the engine will scale to (SPL tokens top out well below this)
MAX_TOKEN_DECIMALS = 18

VALID_RISK_LEVELS = ["conservative", "moderate", "aggressive"]

# Interval to minutes mapping for APScheduler
INTERVAL_MINUTES: dict[str, int] = {
    "1m": 1,
    "5m": 5,
    "15m": 15,
    "30m": 30,
    "1h": 60,
    "4h": 240,
    "1d": 1440,
}
