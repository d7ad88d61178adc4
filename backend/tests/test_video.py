import pytest
from challist.services.video import extract_video_id, video_url

@pytest.mark.parametrize("value", [
    "https://www.youtube.com/watch?v=YP06jhz3Jqo",
    "https://youtube.com/watch?feature=share&v=YP06jhz3Jqo",
    "https://youtu.be/YP06jhz3Jqo",
    "https://www.youtube.com/embed/YP06jhz3Jqo",
    "https://www.youtube.com/v/YP06jhz3Jqo",
    "https://youtube.com/shorts/YP06jhz3Jqo?si=xyz",
    "  YP06jhz3Jqo  ",
])
def test_extracts_id(value):
    assert extract_video_id(value) == "YP06jhz3Jqo"

@pytest.mark.parametrize("value", [None, "", "not a video", "https://vimeo.com/12345", "short_id"])
def test_rejects(value):
    assert extract_video_id(value) is None

def test_video_url():
    assert video_url("YP06jhz3Jqo") == "https://www.youtube.com/watch?v=YP06jhz3Jqo"
    assert video_url(None) is None
