import pytest
from studio_booking.domain.selection import Selection, resource_index, resource_label


def test_selection_exposes_duration_and_hours() -> None:
    selection = Selection(day_idx=1, resource_idx=0, start_hour_idx=10, end_hour_idx=13)
    assert selection.duration == 4
    assert list(selection.hours) == [10, 11, 12, 13]


def test_single_hour_selection() -> None:
    assert Selection.single(2, 1, 7) == Selection(2, 1, 7, 7)


@pytest.mark.parametrize("start,end", [(-1, 3), (5, 4), (20, 24)])
def test_rejects_invalid_hour_span(start: int, end: int) -> None:
    with pytest.raises(ValueError):
        Selection(0, 0, start, end)


def test_with_hours_returns_new_value() -> None:
    selection = Selection(1, 0, 10, 10)
    extended = selection.with_hours(10, 11)
    assert extended == Selection(1, 0, 10, 11)
    assert selection.end_hour_idx == 10


def test_resource_label_round_trip() -> None:
    assert resource_label(0) == "Resource 1"
    assert resource_index("Resource 3") == 2
    assert resource_index(4) == 4


@pytest.mark.parametrize("label", ["Studio 1", "Resource 0", "Resource", "3"])
def test_resource_index_rejects_malformed_labels(label: str) -> None:
    with pytest.raises(ValueError):
        resource_index(label)
