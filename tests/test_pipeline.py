from pathlib import Path
import textwrap

import pytest

from backlist.config import Settings
from backlist.domain.errors import DirectoryNotFound
from backlist.orchestrator.pipeline import analyze_file, analyze_frontend, run_analyze


def write(p: Path, s: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(textwrap.dedent(s), encoding="utf-8")


def make_frontend(root: Path) -> None:
    write(
        root / "api" / "users.ts",
        """
        import axios from 'axios';

        export const listUsers = () => axios.get('/api/users');
        export const getUser = (userId: string) => axios.get(`/api/users/${userId}`);
        export function createUser(name: string) {
          const payload = { name, age: 30, admin: false };
          return axios.post('/api/users', payload);
        }
        """,
    )
    write(
        root / "components" / "Orders.jsx",
        """
        export default function Orders() {
          const load = () => fetch('/api/v2/orders?status=open&page=1');
          const remove = (id) => fetch(`/api/v2/orders/${id}`, { method: 'DELETE' });
          return <img src="/assets/logo.png" onClick={load} />;
        }
        """,
    )
    write(
        root / "pages" / "Profile.tsx",
        """
        export function Profile() {
          fetch('/assets/logo.png');
          return <div onClick={() => api.get('/api/users')}>profile</div>;
        }
        """,
    )


def test_run_analyze_end_to_end(tmp_path: Path):
    make_frontend(tmp_path)

    result = run_analyze(tmp_path, workers=1)

    assert result.files_scanned == 3
    assert result.files_failed == []
    assert result.rejected == 1
    assert result.duplicates == 1

    got = [(e.method, e.route) for e in result.endpoints]
    assert got == [
        ("GET", "/api/users"),
        ("GET", "/api/users/:userId"),
        ("POST", "/api/users"),
        ("GET", "/api/v2/orders"),
        ("DELETE", "/api/v2/orders/:id"),
    ]

    by_key = {e.key: e for e in result.endpoints}

    post = by_key["POST:/api/users"]
    assert {k: f.inferred_type for k, f in post.request_body.items()} == {
        "name": "String",
        "age": "Number",
        "admin": "Boolean",
    }
    assert post.controller_name == "Users"
    assert post.action_name == "postUsers"

    orders = by_key["GET:/api/v2/orders"]
    assert orders.controller_name == "Orders"
    assert orders.query_params == ["status", "page"]
    assert orders.raw_path == "/api/v2/orders?status=open&page=1"
    assert orders.kind == "fetch"

    # first occurrence (api/users.ts sorts before pages/Profile.tsx) wins
    assert by_key["GET:/api/users"].source_file.endswith(str(Path("api") / "users.ts"))


def test_default_method_for_direct_request(tmp_path: Path):
    write(tmp_path / "a.js", "fetch('/api/users');\n")
    endpoints = analyze_frontend(tmp_path)
    assert [(e.method, e.route) for e in endpoints] == [("GET", "/api/users")]


def test_annotated_js_file_is_analyzed(tmp_path: Path):
    write(
        tmp_path / "api.js",
        """
        export function loadUser(id: string) {
          return fetch(`/api/users/${id}`);
        }
        export const logout = () => api.post("/api/logout", {});
        """,
    )

    result = run_analyze(tmp_path)

    assert result.files_failed == []
    assert [(e.method, e.route) for e in result.endpoints] == [
        ("GET", "/api/users/:id"),
        ("POST", "/api/logout"),
    ]
    assert result.endpoints[1].request_body == {}


def test_dedup_across_files_and_call_sites(tmp_path: Path):
    for name in ("a.ts", "b.ts", "c.ts"):
        write(
            tmp_path / name,
            """
            client.put('/api/items/' + itemId, { qty: 1 });
            client.put(`/api/items/${itemId}`, { other: 'x' });
            """,
        )
    endpoints = analyze_frontend(tmp_path, workers=3)

    assert len(endpoints) == 1
    e = endpoints[0]
    assert e.route == "/api/items/:itemId"
    assert list(e.request_body) == ["qty"]
    assert e.source_file.endswith("a.ts")
    assert e.source_line == 2


def test_malformed_file_does_not_break_run(tmp_path: Path):
    write(tmp_path / "broken.ts", "export const = (;\nfetch('/api/ghost');\n")
    write(tmp_path / "ok.ts", "fetch('/api/health');\n")

    result = run_analyze(tmp_path)

    assert result.files_failed == ["broken.ts"]
    assert [e.route for e in result.endpoints] == ["/api/health"]


def test_oversized_file_is_skipped(tmp_path: Path):
    write(tmp_path / "big.js", "fetch('/api/big');\n" + "// pad\n" * 50)
    write(tmp_path / "small.js", "fetch('/api/small');\n")

    result = run_analyze(tmp_path, settings=Settings(max_file_bytes=100))

    assert result.files_failed == ["big.js"]
    assert [e.route for e in result.endpoints] == ["/api/small"]


def test_analysis_is_idempotent_and_independent_of_worker_count(tmp_path: Path):
    make_frontend(tmp_path)
    for i in range(10):
        write(tmp_path / "gen" / f"m{i:02d}.ts", f"api.get('/api/things/{i % 3}');\n")

    first = analyze_frontend(tmp_path, workers=1)
    second = analyze_frontend(tmp_path, workers=8)
    third = analyze_frontend(tmp_path, workers=8)

    dump = lambda eps: [e.model_dump() for e in eps]
    assert dump(first) == dump(second) == dump(third)


def test_missing_root_fails_before_any_work(tmp_path: Path):
    with pytest.raises(DirectoryNotFound):
        run_analyze(tmp_path / "does-not-exist")


def test_analyze_file_unreadable_path(tmp_path: Path):
    res = analyze_file(str(tmp_path / "gone.ts"))
    assert res.failed
    assert res.endpoints == []
