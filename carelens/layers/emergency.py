"""CareLens — Emergency SOS info

Emergency number and map links for the SOS page.
No dispatch integration: nothing is called or sent, `dispatched` is always False.
"""
import structlog

from carelens.core.config import GeoConfig

logger = structlog.get_logger()


def emergency_info(config: GeoConfig, lat: float | None = None, lng: float | None = None) -> dict:
    info = {
        "emergencyNumber": config.emergency_number,
        "dispatched": False,
        "location": None,
        "mapsUrl": None,
        "nearbyHospitalsUrl": None,
        "message": f"Call {config.emergency_number} for a life-threatening emergency.",
    }
    if lat is not None and lng is not None:
        info["location"] = {"lat": lat, "lng": lng}
        info["mapsUrl"] = f"https://www.google.com/maps?q={lat},{lng}"
        info["nearbyHospitalsUrl"] = (
            f"https://www.google.com/maps/search/?api=1&query=hospitals&center={lat},{lng}"
        )
    logger.info("emergency_info_requested", has_location=info["location"] is not None)
    return info
