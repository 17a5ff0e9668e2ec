from dataclasses import dataclass

import numpy as np
from sklearn.metrics.pairwise import euclidean_distances
from faceattend.config.settings import DESCRIPTOR_LENGTH, MATCH_THRESHOLD


@dataclass(frozen=True)
class MatchResult:
    identity_id: int
    name: str
    distance: float

    @property
    def similarity(self):
        # Display only; matching is decided on raw distance
        return 1.0 - self.distance


class FaceRecognizer:
    """
    Face descriptor comparison.
    """
    @staticmethod
    def to_vector(descriptor):
        """
        Returns a 128-D descriptor vector.
        """
        vector = np.asarray(descriptor, dtype="float64").reshape(-1)
        if vector.shape[0] != DESCRIPTOR_LENGTH:
            raise ValueError(
                f"Descriptor must have {DESCRIPTOR_LENGTH} values, got {vector.shape[0]}"
            )
        return vector

    @staticmethod
    def distances(query, enrolled):
        """
        Euclidean distance from the query to each enrolled identity, in order.
        """
        if not enrolled:
            return np.empty(0)
        test_descriptor = FaceRecognizer.to_vector(query).reshape(1, -1)
        stored = np.vstack([FaceRecognizer.to_vector(identity.descriptor) for identity in enrolled])
        return euclidean_distances(test_descriptor, stored)[0]

    @staticmethod
    def match(query, enrolled):
        """
        Find the closest enrolled identity strictly under the match threshold.
        Returns a MatchResult or None. Ties go to the earliest enrolled.
        """
        enrolled = list(enrolled)
        scores = FaceRecognizer.distances(query, enrolled)

        best_match = None
        best_distance = float("inf")
        for identity, distance in zip(enrolled, scores):
            if distance < best_distance and distance < MATCH_THRESHOLD:
                best_distance = float(distance)
                best_match = MatchResult(
                    identity_id=identity.id,
                    name=identity.name,
                    distance=best_distance,
                )
        return best_match
