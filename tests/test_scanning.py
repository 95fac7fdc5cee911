import pytest

from media_sorter.exceptions import ScanError
from media_sorter.models import MediaClass
from media_sorter.scanning.filesystem import MediaScanner


@pytest.fixture
def tree(tmp_path):
    root = tmp_path
    (root / "b.JPG").write_text("x")
    (root / "a.mp4").write_text("x")
    (root / "readme.txt").write_text("x")
    (root / "._a.mp4").write_text("x")
    level1 = root / "one"
    level1.mkdir()
    (level1 / "c.heic").write_text("x")
    level2 = level1 / "two"
    level2.mkdir()
    (level2 / "d.MOV").write_text("x")
    return root


def test_iter_media_orders_and_filters(settings, tree):
    found = [m.path for m in MediaScanner(settings).iter_media(tree)]
    assert found == [
        tree / "a.mp4",
        tree / "b.JPG",
        tree / "one" / "c.heic",
        tree / "one" / "two" / "d.MOV",
    ]


@pytest.mark.parametrize("depth,count", [(0, 2), (1, 3), (2, 4), (-1, 4)])
def test_depth_limit(settings, tree, depth, count):
    assert len(list(MediaScanner(settings).iter_media(tree, max_depth=depth))) == count


def test_skip_dirs(settings, tree):
    found = list(MediaScanner(settings).iter_media(tree, skip_dirs={tree / "one"}))
    assert [m.path.name for m in found] == ["a.mp4", "b.JPG"]


def test_classify_is_case_insensitive(settings, tmp_path):
    scanner = MediaScanner(settings)
    jpg = scanner.classify(tmp_path / "photo.JPEG")
    assert jpg.media_class is MediaClass.IMAGE
    assert jpg.extension == ".JPEG"
    assert scanner.classify(tmp_path / "clip.MkV").media_class is MediaClass.VIDEO
    assert scanner.classify(tmp_path / "doc.pdf") is None
    assert scanner.classify(tmp_path / "._photo.jpg") is None


def test_missing_root_raises(settings, tmp_path):
    with pytest.raises(ScanError):
        list(MediaScanner(settings).iter_media(tmp_path / "nope"))
