"""GeoCoordinates value object."""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float

from marketplace.domain import marketplace


@marketplace.value_object
class GeoCoordinates:
    """Latitude/longitude pair.

    Both coordinates are required; partial coordinates are rejected.
    """

    latitude: Float(min_value=-90.0, max_value=90.0)
    longitude: Float(min_value=-180.0, max_value=180.0)

    @invariant.post
    def both_coordinates_required(self):
        if self.latitude is None or self.longitude is None:
            raise ValidationError({"coordinates": ["Both latitude and longitude are required"]})
