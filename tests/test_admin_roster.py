import csv
import io
import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:////tmp/bg_portal_test_api.db")
os.environ.setdefault("AUTO_CREATE_DB", "true")
os.environ.setdefault("AUTO_RUN_MIGRATIONS", "false")
os.environ.setdefault("AUTO_SEED_ADMIN_USER", "false")
os.environ.setdefault("PORTAL_AUTH_DISABLED", "true")

from fastapi.testclient import TestClient

from app.main import create_app


def _client() -> TestClient:
    app = create_app()
    return TestClient(app)


def _rows(body: str) -> list[dict]:
    return list(csv.DictReader(io.StringIO(body)))


def _csv(header: list[str], rows: list[list[str]]) -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(header)
    writer.writerows(rows)
    return buf.getvalue().encode("utf-8")


def test_employee_import_upserts_and_exports():
    tag = uuid.uuid4().hex[:6]
    first = _csv(
        ["Employee ID", "Display Name", "Mini Region", "Region", "Sub Zone", "Zone"],
        [[f"{tag}-1", "Asha", "MR1", "R1", "SZ1", "Z1"], ["", "No Id", "", "", "", ""]],
    )
    second = _csv(
        ["employeeId", "displayName", "zoneName"],
        [[f"{tag}-1", "Asha Rao", "Z9"], [f"{tag}-2", "Vik", "Z2"]],
    )
    with _client() as client:
        resp = client.post("/api/admin/employees/import", files={"file": ("emp.csv", first, "text/csv")})
        assert resp.status_code == 200
        assert resp.json()["importedCount"] == 1
        assert resp.json()["skippedCount"] == 1

        resp = client.post("/api/admin/employees/import", files={"file": ("emp.csv", second, "text/csv")})
        assert resp.json()["importedCount"] == 1
        assert resp.json()["updatedCount"] == 1

        export = client.get("/api/admin/employees/export")
        assert export.status_code == 200
        assert export.headers["content-type"].startswith("text/csv")
        assert "attachment" in export.headers["content-disposition"]
        rows = {r["Employee ID"]: r for r in _rows(export.text)}
        assert rows[f"{tag}-1"]["Display Name"] == "Asha Rao"
        assert rows[f"{tag}-1"]["Zone"] == "Z9"
        assert rows[f"{tag}-1"]["Region"] == "R1"
        assert rows[f"{tag}-2"]["Display Name"] == "Vik"


def test_users_import_creates_missing_only():
    tag = uuid.uuid4().hex[:6]
    payload = _csv(
        ["Employee ID", "Full Name", "Role"],
        [[f"{tag}-a", "Admin Person", "admin"], [f"{tag}-b", "Plain", "wizard"]],
    )
    with _client() as client:
        resp = client.post("/api/admin/users/import", files={"file": ("users.csv", payload, "text/csv")})
        assert resp.json() == {"message": "Import completed", "importedCount": 2, "skippedCount": 0}
        resp = client.post("/api/admin/users/import", files={"file": ("users.csv", payload, "text/csv")})
        assert resp.json()["skippedCount"] == 2

        rows = {r["Employee ID"]: r for r in _rows(client.get("/api/admin/users/export").text)}
        assert rows[f"{tag}-a"]["Role"] == "admin"
        assert rows[f"{tag}-b"]["Role"] == "user"


def test_import_rejects_bad_files():
    with _client() as client:
        assert client.post("/api/admin/employees/import").status_code == 400
        bad = client.post(
            "/api/admin/employees/import",
            files={"file": ("emp.xlsx", b"\xff\xfe\x00binary", "application/octet-stream")},
        )
        assert bad.status_code == 400
        empty = client.post("/api/admin/users/import", files={"file": ("u.csv", b"", "text/csv")})
        assert empty.status_code == 400


def test_requests_export_lists_uploads():
    user_id = f"u-{uuid.uuid4().hex[:8]}"
    with _client() as client:
        client.post(
            "/api/images/upload",
            files={"image": ("cat.png", b"\x89PNG-bytes", "image/png")},
            data={"userId": user_id, "employeeId": "1001", "displayName": "Asha"},
        )
        export = client.get("/api/admin/requests/export-file")
        assert export.status_code == 200
        rows = [r for r in _rows(export.text) if r["User ID"] == user_id]
        assert len(rows) == 1
        assert rows[0]["Status"] == "pending"
        assert rows[0]["Original File"] == "cat.png"
        assert rows[0]["Completed At"] == ""


def test_admin_requests_pagination_shape():
    user_id = f"u-{uuid.uuid4().hex[:8]}"
    with _client() as client:
        ids = []
        for _ in range(3):
            resp = client.post(
                "/api/images/upload",
                files={"image": ("cat.png", b"\x89PNG-bytes", "image/png")},
                data={"userId": user_id, "employeeId": "1001", "displayName": "Asha"},
            )
            ids.append(resp.json()["request"]["id"])

        resp = client.get("/api/admin/requests", params={"page": 1, "limit": 2})
        assert resp.status_code == 200
        body = resp.json()
        meta = body["pagination"]
        assert meta["page"] == 1
        assert meta["limit"] == 2
        assert meta["total"] >= 3
        assert meta["totalPages"] == -(-meta["total"] // 2)
        assert len(body["requests"]) == 2
        # newest first
        assert body["requests"][0]["id"] == ids[-1]

        default = client.get("/api/admin/requests").json()
        assert default["pagination"]["limit"] == 5

        assert client.get("/api/admin/requests", params={"page": 0}).status_code == 400
        assert client.get("/api/admin/requests", params={"limit": 0}).status_code == 400


def test_page_size_capped(monkeypatch):
    monkeypatch.setenv("API_MAX_PAGE_SIZE", "3")
    with _client() as client:
        resp = client.get("/api/admin/requests", params={"limit": 100})
        assert resp.status_code == 200
        assert resp.json()["pagination"]["limit"] == 3
        assert len(resp.json()["requests"]) <= 3


def test_clear_employees():
    with _client() as client:
        payload = _csv(["Employee ID", "Display Name"], [[uuid.uuid4().hex[:8], "Temp"]])
        client.post("/api/admin/employees/import", files={"file": ("e.csv", payload, "text/csv")})
        resp = client.delete("/api/admin/employees")
        assert resp.status_code == 200
        assert resp.json()["deletedCount"] >= 1
        assert _rows(client.get("/api/admin/employees/export").text) == []
