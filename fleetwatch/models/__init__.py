# FleetWatch: Database Models
# Import all models here for SQLAlchemy discovery

from fleetwatch.models.geofence_vehicle_state import GeofenceVehicleState  # noqa
from fleetwatch.models.geofence_event import GeofenceEvent                # noqa
from fleetwatch.models.geofence_share import GeofenceShare                # noqa
from fleetwatch.models.heartbeat_lease import HeartbeatLease              # noqa
