"""Unlock resolver tests: lock precedence, access checks, path advancement."""

from __future__ import annotations

import pytest

from learnstack.catalog.snapshot import Catalog
from learnstack.errors import NotFoundError
from learnstack.progress.initializer import initialize_progress
from learnstack.progress.models import UserSnapshot
from learnstack.progress.unlock import (
    check_access,
    check_subject_access,
    effective_algorithm_status,
    effective_topic_status,
    set_algorithm_override,
    set_topic_override,
    topic_prerequisites_met,
    unlock_next_topic,
)


@pytest.fixture
def snapshot(catalog: Catalog) -> UserSnapshot:
    return initialize_progress("ada", "ada@example.com", catalog)


def _finish_searching(snapshot: UserSnapshot) -> None:
    entry = snapshot.progress["searching"]
    for algo in entry.algorithms.values():
        algo.completed = True
    entry.completion = 100
    entry.status = "completed"
    snapshot.learning_path.completed_topics.append("searching")


class TestPrerequisites:
    """Topic prerequisite satisfaction."""

    def test_requires_completed_list_and_full_completion(self, snapshot: UserSnapshot):
        """Being listed as completed is not enough below 100%."""
        snapshot.learning_path.completed_topics.append("searching")
        snapshot.progress["searching"].completion = 50
        assert topic_prerequisites_met(snapshot, ["searching"]) is False

    def test_met_after_topic_finished(self, snapshot: UserSnapshot):
        """A finished topic satisfies its dependents."""
        _finish_searching(snapshot)
        assert topic_prerequisites_met(snapshot, ["searching"]) is True

    def test_no_prerequisites(self, snapshot: UserSnapshot):
        """No prerequisites are trivially met."""
        assert topic_prerequisites_met(snapshot, []) is True


class TestEffectiveStatus:
    """Lock precedence when resolving topic and algorithm status."""

    def test_unmet_prerequisite_locks(self, snapshot: UserSnapshot, catalog: Catalog):
        """An unmet prerequisite locks the topic."""
        assert effective_topic_status(snapshot, catalog.topic("sorting")) == "locked"

    def test_prerequisite_met_uses_tracked_status(self, snapshot: UserSnapshot, catalog: Catalog):
        """With prerequisites met the tracked status applies."""
        _finish_searching(snapshot)
        assert effective_topic_status(snapshot, catalog.topic("sorting")) == "available"

    def test_global_lock(self, snapshot: UserSnapshot, catalog: Catalog):
        """A global lock locks the topic."""
        catalog.topic("cBasics").is_globally_locked = True
        assert effective_topic_status(snapshot, catalog.topic("cBasics")) == "locked"

    def test_user_unlock_beats_global_lock(self, snapshot: UserSnapshot, catalog: Catalog):
        """A per-user unlock wins over a global lock."""
        catalog.topic("cBasics").is_globally_locked = True
        set_topic_override(snapshot, catalog, "cBasics", locked=False)
        assert effective_topic_status(snapshot, catalog.topic("cBasics")) == "available"

    def test_user_unlock_beats_prerequisites(self, snapshot: UserSnapshot, catalog: Catalog):
        """A per-user unlock wins over unmet prerequisites."""
        set_topic_override(snapshot, catalog, "sorting", locked=False)
        assert effective_topic_status(snapshot, catalog.topic("sorting")) == "available"

    def test_user_lock(self, snapshot: UserSnapshot, catalog: Catalog):
        """A per-user lock locks the topic and its algorithms."""
        set_topic_override(snapshot, catalog, "cBasics", locked=True)
        topic = catalog.topic("cBasics")
        assert effective_topic_status(snapshot, topic) == "locked"
        assert effective_algorithm_status(snapshot, topic, topic.algorithm("cIntro")) == "locked"

    def test_stale_tracked_lock_resolves_available(self, snapshot: UserSnapshot, catalog: Catalog):
        """A tracked lock with no cause behind it reads as available."""
        snapshot.progress["cBasics"].status = "locked"
        assert effective_topic_status(snapshot, catalog.topic("cBasics")) == "available"

    def test_locked_topic_locks_unlocked_algorithm(self, snapshot: UserSnapshot, catalog: Catalog):
        """An algorithm unlock does not open a locked topic."""
        set_algorithm_override(snapshot, catalog, "sorting", "bubbleSort", locked=False)
        topic = catalog.topic("sorting")
        assert effective_algorithm_status(snapshot, topic, topic.algorithm("bubbleSort")) == "locked"

    def test_algorithm_prerequisite(self, snapshot: UserSnapshot, catalog: Catalog):
        """An algorithm opens once its prerequisite algorithm is completed."""
        topic = catalog.topic("searching")
        binary = topic.algorithm("binarySearch")
        assert effective_algorithm_status(snapshot, topic, binary) == "locked"
        snapshot.progress["searching"].algorithms["linearSearch"].completed = True
        assert effective_algorithm_status(snapshot, topic, binary) == "available"

    def test_global_algorithm_lock(self, snapshot: UserSnapshot, catalog: Catalog):
        """A global algorithm lock holds until a per-user unlock."""
        topic = catalog.topic("searching")
        topic.algorithm("linearSearch").is_globally_locked = True
        assert effective_algorithm_status(snapshot, topic, topic.algorithm("linearSearch")) == "locked"
        set_algorithm_override(snapshot, catalog, "searching", "linearSearch", locked=False)
        assert effective_algorithm_status(snapshot, topic, topic.algorithm("linearSearch")) == "available"


class TestCheckAccess:
    """Access checks for a topic or algorithm."""

    def test_topic_access(self, snapshot: UserSnapshot, catalog: Catalog):
        """An open topic grants access."""
        result = check_access(snapshot, catalog, "searching")
        assert result.has_access is True
        assert result.effective_status == "available"

    def test_locked_topic(self, snapshot: UserSnapshot, catalog: Catalog):
        """An algorithm in a locked topic is denied."""
        result = check_access(snapshot, catalog, "sorting", "bubbleSort")
        assert result.has_access is False
        assert result.effective_status == "locked"

    def test_unknown_topic(self, snapshot: UserSnapshot, catalog: Catalog):
        """An unknown topic is NotFound."""
        with pytest.raises(NotFoundError):
            check_access(snapshot, catalog, "graphs")

    def test_unknown_algorithm(self, snapshot: UserSnapshot, catalog: Catalog):
        """An unknown algorithm is NotFound with its id in the context."""
        with pytest.raises(NotFoundError) as exc_info:
            check_access(snapshot, catalog, "searching", "jumpSearch")
        assert exc_info.value.context["algorithm_id"] == "jumpSearch"


class TestSubjectAccess:
    """Subject access: open while any of its topics is open."""

    def test_open_subject(self, snapshot: UserSnapshot, catalog: Catalog):
        """A subject with an open topic is accessible."""
        assert check_subject_access(snapshot, catalog, "C Programming") is True

    def test_all_topics_locked(self, snapshot: UserSnapshot, catalog: Catalog):
        """Locking every topic closes the subject."""
        set_topic_override(snapshot, catalog, "cBasics", locked=True)
        assert check_subject_access(snapshot, catalog, "C Programming") is False

    def test_one_open_topic_is_enough(self, snapshot: UserSnapshot, catalog: Catalog):
        """Sorting is locked by prerequisites but searching keeps the subject open."""
        assert check_subject_access(snapshot, catalog, "DSA Visualizer") is True

    def test_subject_without_topics(self, snapshot: UserSnapshot, catalog: Catalog):
        """A subject with no topics is not accessible."""
        assert check_subject_access(snapshot, catalog, "Rust") is False


class TestUnlockNextTopic:
    """Moving the learning path past a finished topic."""

    def test_advances_current_topic(self, snapshot: UserSnapshot, catalog: Catalog):
        """Finishing the current topic advances to the next one."""
        _finish_searching(snapshot)
        assert unlock_next_topic(snapshot, catalog, "searching") == "sorting"
        assert snapshot.learning_path.current_topic == "sorting"

    def test_opens_tracked_lock(self, snapshot: UserSnapshot, catalog: Catalog):
        """The next topic's tracked lock is opened on advance."""
        snapshot.progress["sorting"].status = "locked"
        _finish_searching(snapshot)
        unlock_next_topic(snapshot, catalog, "searching")
        assert snapshot.progress["sorting"].status == "available"
        assert snapshot.progress["sorting"].override is None

    def test_globally_locked_successor_holds_pointer(self, snapshot: UserSnapshot, catalog: Catalog):
        """A globally locked successor keeps the path where it is."""
        catalog.topic("sorting").is_globally_locked = True
        _finish_searching(snapshot)
        assert unlock_next_topic(snapshot, catalog, "searching") is None
        assert snapshot.learning_path.current_topic == "searching"

    def test_incomplete_topic_does_not_advance(self, snapshot: UserSnapshot, catalog: Catalog):
        """An unfinished topic does not advance the path."""
        assert unlock_next_topic(snapshot, catalog, "searching") is None
        assert snapshot.learning_path.current_topic == "searching"

    def test_last_topic(self, snapshot: UserSnapshot, catalog: Catalog):
        """There is nothing after the last topic."""
        assert unlock_next_topic(snapshot, catalog, "cBasics") is None

    def test_pointer_elsewhere_is_left_alone(self, snapshot: UserSnapshot, catalog: Catalog):
        """Finishing a topic other than the current one leaves the path alone."""
        snapshot.learning_path.current_topic = "cBasics"
        _finish_searching(snapshot)
        assert unlock_next_topic(snapshot, catalog, "searching") is None
        assert snapshot.learning_path.current_topic == "cBasics"


class TestOverrides:
    """Per-user lock and unlock overrides."""

    def test_unknown_topic(self, snapshot: UserSnapshot, catalog: Catalog):
        """Overriding an unknown topic is NotFound."""
        with pytest.raises(NotFoundError):
            set_topic_override(snapshot, catalog, "graphs", locked=True)

    def test_unknown_algorithm(self, snapshot: UserSnapshot, catalog: Catalog):
        """Overriding an unknown algorithm is NotFound."""
        with pytest.raises(NotFoundError):
            set_algorithm_override(snapshot, catalog, "searching", "jumpSearch", locked=True)

    def test_creates_missing_entry(self, snapshot: UserSnapshot, catalog: Catalog):
        """Overriding an untracked topic creates its entry."""
        del snapshot.progress["cBasics"]
        entry = set_topic_override(snapshot, catalog, "cBasics", locked=True)
        assert entry.status == "locked"
        assert entry.override == "locked"
        assert snapshot.progress["cBasics"] is entry

    def test_unlock_clears_tracked_lock(self, snapshot: UserSnapshot, catalog: Catalog):
        """An unlock after a lock leaves the topic available."""
        set_topic_override(snapshot, catalog, "cBasics", locked=True)
        set_topic_override(snapshot, catalog, "cBasics", locked=False)
        assert snapshot.progress["cBasics"].status == "available"
        assert snapshot.progress["cBasics"].override == "unlocked"
