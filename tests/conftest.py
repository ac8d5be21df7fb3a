import pytest

from tests.fakes import GDOC, FakeDriveStore, drive_file, drive_folder


@pytest.fixture
def small_tree() -> FakeDriveStore:
    """root -> (A -> C), (B -> D); a couple of files per folder."""
    return FakeDriveStore(
        {
            "root": [
                drive_folder("A"),
                drive_folder("B"),
                drive_file("r1", "Android basics", modified="2024-03-01T10:00:00.000Z"),
                drive_file("r2", "Budget 2024", modified="2024-01-15T08:00:00.000Z"),
            ],
            "A": [
                drive_folder("C"),
                drive_file("a1", "Android advanced tutorial", modified="2024-05-20T09:30:00.000Z"),
            ],
            "B": [
                drive_folder("D"),
                drive_file("b1", "Kotlin notes", GDOC, modified="2023-12-01T12:00:00.000Z"),
            ],
            "C": [drive_file("c1", "Android testing guide", modified="2024-06-02T07:00:00.000Z")],
            "D": [drive_file("d1", "Untitled scan", modified=None)],
        }
    )
