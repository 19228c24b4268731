from volunteer_api.models.user import User
from volunteer_api.models.event import Event
from volunteer_api.models.volunteer import Volunteer
from volunteer_api.models.counter import Counter

__all__ = ["User", "Event", "Volunteer", "Counter"]
