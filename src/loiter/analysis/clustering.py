"""Spatial clustering of a device's sightings.

Single pass, greedy and order-sensitive:

- Walk sightings in time order.
- Compare each one against every existing cluster centroid in creation order.
- Join the FIRST cluster whose centroid lies within the radius. This is
  first-match, not nearest-centroid; switching policies changes cluster
  counts and therefore scores.
- Otherwise open a new singleton cluster at the sighting's coordinates.
- After each join, the centroid becomes the mean of all member coordinates.

Cost is O(sightings x clusters) per device.
"""

from collections.abc import Sequence

from loiter.analysis.geo import haversine_m
from loiter.analysis.models import LocationCluster
from loiter.registry.models import Sighting


def cluster_sightings(sightings: Sequence[Sighting], radius_m: float) -> list[LocationCluster]:
    """Group time-ordered sightings into location clusters."""
    clusters: list[LocationCluster] = []

    for sighting in sightings:
        for cluster in clusters:
            dist = haversine_m(
                cluster.centroid_lat,
                cluster.centroid_lon,
                sighting.latitude,
                sighting.longitude,
            )
            if dist <= radius_m:
                cluster.add(sighting)
                break
        else:
            clusters.append(
                LocationCluster(
                    centroid_lat=sighting.latitude,
                    centroid_lon=sighting.longitude,
                    sightings=[sighting],
                )
            )

    return clusters
