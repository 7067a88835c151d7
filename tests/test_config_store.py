import pytest

from weekload.config_store import CapacityConfigStore, apply_config_update
from weekload.errors import ValidationError
from weekload.models import CapacityConfig, Task
from weekload.persistence import Store


def test_default_config_created_on_first_use(tmp_path):
    store = Store(tmp_path / "db.json")
    config = CapacityConfigStore(store).get_config()
    assert config == CapacityConfig(2400, 20)

    saved, _, _ = store.load()
    assert saved == config


def test_partial_update_keeps_other_fields(tmp_path):
    configs = CapacityConfigStore(Store(tmp_path / "db.json"))
    configs.set_config({"buffer_percentage": 10})
    config = configs.set_config({"weekly_minutes": 1800})
    assert config.weekly_minutes == 1800
    assert config.buffer_percentage == 10
    assert config.usable_minutes == 1620


@pytest.mark.parametrize(
    "partial",
    [
        {"weekly_minutes": 0},
        {"weekly_minutes": -30},
        {"weekly_minutes": 120.5},
        {"weekly_minutes": True},
        {"buffer_percentage": -1},
        {"buffer_percentage": 101},
        {"buffer_percentage": 100},
        {"buffer_percentage": "20"},
        {"daily_minutes": 300},
    ],
)
def test_invalid_updates_rejected(partial):
    with pytest.raises(ValidationError):
        apply_config_update(CapacityConfig(), partial)


def test_rejected_update_leaves_stored_config(tmp_path):
    store = Store(tmp_path / "db.json")
    configs = CapacityConfigStore(store)
    configs.set_config({"weekly_minutes": 1000})
    with pytest.raises(ValidationError):
        configs.set_config({"weekly_minutes": 0})
    assert configs.get_config().weekly_minutes == 1000


def test_config_change_does_not_touch_commitments(tmp_path):
    store = Store(tmp_path / "db.json")
    store.save(CapacityConfig(), {"T-1": Task("T-1", "Big", 2000, this_week=True)}, {})
    CapacityConfigStore(store).set_config({"weekly_minutes": 600})

    _, tasks, _ = store.load()
    assert tasks["T-1"].this_week is True
