from app.core.pagination import clamp_limit, get_max_page_size, page_offset, pagination_meta, total_pages


def test_page_size_capped(monkeypatch):
    monkeypatch.setenv("API_MAX_PAGE_SIZE", "5")
    assert get_max_page_size() == 5
    assert clamp_limit(100) == 5
    assert clamp_limit(0) == 1


def test_invalid_cap_falls_back(monkeypatch):
    monkeypatch.setenv("API_MAX_PAGE_SIZE", "lots")
    assert get_max_page_size() == 100
    monkeypatch.setenv("API_MAX_PAGE_SIZE", "0")
    assert get_max_page_size() == 100


def test_total_pages_and_offsets():
    assert total_pages(0, 5) == 0
    assert total_pages(5, 5) == 1
    assert total_pages(11, 5) == 3
    assert page_offset(1, 5) == 0
    assert page_offset(3, 5) == 10


def test_pagination_meta_shape():
    assert pagination_meta(total=11, page=2, limit=5) == {"total": 11, "page": 2, "limit": 5, "totalPages": 3}
