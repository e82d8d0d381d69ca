from sqlalchemy import event

from app.core.geography import normalize_state, normalize_territory_value
from app.models.territory import TerritoryOwnership


# Territory values are matched by equality, so store them normalised
@event.listens_for(TerritoryOwnership, "before_insert")
@event.listens_for(TerritoryOwnership, "before_update")
def normalize_territory(mapper, connection, target):
    territory_type = getattr(target.type, "value", target.type)
    target.type = territory_type
    target.value = normalize_territory_value(territory_type, target.value)
    target.state = normalize_state(target.state)
    if not target.value:
        raise ValueError(f"Territory of type {territory_type!r} needs a value")
