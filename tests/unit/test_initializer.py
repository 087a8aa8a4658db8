"""Progress tree initialization tests."""

from __future__ import annotations

from learnstack.catalog.snapshot import Catalog
from learnstack.progress.initializer import initialize_progress
from learnstack.progress.unlock import effective_topic_status


class TestInitializeProgress:
    """A new learner's progress tree built from the catalog."""

    def test_every_topic_and_algorithm_present(self, catalog: Catalog):
        """Every catalog topic and algorithm starts at zero and available."""
        snapshot = initialize_progress("ada", "ada@example.com", catalog)
        assert list(snapshot.progress) == ["searching", "sorting", "cBasics"]
        assert set(snapshot.progress["searching"].algorithms) == {"linearSearch", "binarySearch"}
        for topic in snapshot.progress.values():
            assert topic.completion == 0
            for algo in topic.algorithms.values():
                assert algo.status == "available"
                assert algo.completed is False

    def test_learning_path(self, catalog: Catalog):
        """The path starts at the first topic with nothing completed."""
        snapshot = initialize_progress("ada", "ada@example.com", catalog)
        assert snapshot.learning_path.current_topic == "searching"
        assert snapshot.learning_path.topic_order == ["searching", "sorting", "cBasics"]
        assert snapshot.learning_path.completed_topics == []

    def test_topics_sorted_by_order(self, catalog: Catalog):
        """Topic order follows the catalog order field, not list order."""
        catalog.topics.reverse()
        snapshot = initialize_progress("ada", "ada@example.com", catalog)
        assert snapshot.learning_path.topic_order == ["searching", "sorting", "cBasics"]

    def test_globally_locked_topic_starts_locked(self, catalog: Catalog):
        """A globally locked topic is tracked as locked from the start."""
        catalog.topic("cBasics").is_globally_locked = True
        snapshot = initialize_progress("ada", "ada@example.com", catalog)
        assert snapshot.progress["cBasics"].status == "locked"
        assert snapshot.progress["searching"].status == "available"

    def test_prerequisite_topic_effectively_locked(self, catalog: Catalog):
        """Tracked as available, but its prerequisite is not complete yet."""
        snapshot = initialize_progress("ada", "ada@example.com", catalog)
        assert snapshot.progress["sorting"].status == "available"
        assert effective_topic_status(snapshot, catalog.topic("sorting")) == "locked"

    def test_empty_catalog(self):
        """An empty catalog gives an empty tree and no current topic."""
        snapshot = initialize_progress("ada", "ada@example.com", Catalog())
        assert snapshot.progress == {}
        assert snapshot.learning_path.current_topic is None

    def test_fresh_stats(self, catalog: Catalog):
        """Stats start at Bronze with no points, streak or achievements."""
        snapshot = initialize_progress("ada", "ada@example.com", catalog)
        assert snapshot.stats.rank.level == "Bronze"
        assert snapshot.stats.rank.points == 0
        assert snapshot.stats.streak.current == 0
        assert snapshot.achievements == []
