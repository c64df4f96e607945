from ridehail.models.driver import Driver, DriverStatus
from ridehail.models.ops_event import OpsEvent
from ridehail.models.penalty import Penalty
from ridehail.models.ride import Ride, RideStatus
from ridehail.models.ride_location import RideLocation
from ridehail.models.user import User

__all__ = [
    "Driver",
    "DriverStatus",
    "OpsEvent",
    "Penalty",
    "Ride",
    "RideLocation",
    "RideStatus",
    "User",
]
