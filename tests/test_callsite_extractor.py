import textwrap

from backlist.extractors.js.callsites import extract_calls_from_source


def _extract(src: str, grammar: str = "tsx"):
    return extract_calls_from_source(textwrap.dedent(src), grammar)


def _types(fields):
    return {name: f.inferred_type for name, f in fields.items()}


def test_fetch_without_options_defaults_to_get():
    calls = _extract(
        """
        export async function loadUsers() {
          const res = await fetch('/api/users');
          return res.json();
        }
        """
    )
    assert len(calls) == 1
    assert calls[0].kind == "fetch"
    assert calls[0].method == "GET"
    assert calls[0].url == "/api/users"
    assert calls[0].body_fields is None
    assert calls[0].line == 3


def test_fetch_method_and_inline_stringified_body():
    calls = _extract(
        """
        fetch('/api/products', {
          method: 'post',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({ title: 'x', price: 9.5, inStock: true, tags: [], meta: { a: 1 } }),
        });
        """
    )
    assert len(calls) == 1
    c = calls[0]
    assert c.method == "POST"
    assert _types(c.body_fields) == {
        "title": "String",
        "price": "Number",
        "inStock": "Boolean",
        "tags": "String",
        "meta": "String",
    }
    assert list(c.body_fields) == ["title", "price", "inStock", "tags", "meta"]


def test_fetch_body_identifier_resolved_one_hop():
    calls = _extract(
        """
        async function save(name: string) {
          const payload = { name, age: 3 };
          await fetch(`/api/people`, { method: "PUT", body: JSON.stringify(payload) });
        }
        """
    )
    assert len(calls) == 1
    assert calls[0].method == "PUT"
    assert _types(calls[0].body_fields) == {"name": "String", "age": "Number"}


def test_fetch_non_literal_method_stays_get():
    calls = _extract(
        """
        const verb = 'POST';
        fetch('/api/things', { method: verb, body: JSON.stringify({ a: 1 }) });
        """
    )
    assert calls[0].method == "GET"
    assert calls[0].body_fields is None


def test_fetch_get_ignores_body():
    calls = _extract(
        """
        fetch('/api/things', { body: JSON.stringify({ a: 1 }) });
        """
    )
    assert calls[0].method == "GET"
    assert calls[0].body_fields is None


def test_client_post_with_identifier_payload():
    calls = _extract(
        """
        const payload = { id: 1, active: true };
        client.post('/api/widgets', payload);
        """
    )
    assert len(calls) == 1
    c = calls[0]
    assert c.kind == "client"
    assert c.client == "client"
    assert c.method == "POST"
    assert _types(c.body_fields) == {"id": "Number", "active": "Boolean"}


def test_client_methods_are_case_insensitive_and_client_is_not_checked():
    calls = _extract(
        """
        import api from './api';
        this.http.Put('/api/users/1', { name: 'n' });
        api.DELETE('/api/users/1');
        axios.patch('/api/users/1', { email: 'e' });
        """
    )
    assert [(c.client, c.method) for c in calls] == [
        ("this.http", "PUT"),
        ("api", "DELETE"),
        ("axios", "PATCH"),
    ]
    assert _types(calls[0].body_fields) == {"name": "String"}
    assert calls[1].body_fields is None


def test_get_second_argument_is_not_a_body():
    calls = _extract(
        """
        axios.get('/api/search', { params: { q: 'x' } });
        """
    )
    assert calls[0].method == "GET"
    assert calls[0].body_fields is None


def test_unrecognized_calls_are_ignored():
    calls = _extract(
        """
        doFetch('/api/a');
        store.fetch('/api/b');
        api.getAll('/api/c');
        api['post']('/api/d', {});
        console.log('/api/e');
        """
    )
    assert calls == []


def test_template_url_placeholders():
    calls = _extract(
        """
        function load(userId: string, post: { id: number }) {
          return axios.get(`/api/users/${userId}/posts/${post.id}?expand=${1 + 1}`);
        }
        """
    )
    assert calls[0].url == "/api/users/{userId}/posts/{param2}?expand={param3}"


def test_string_concatenation_url():
    calls = _extract(
        """
        const id = 5;
        api.delete('/api/orders/' + id + '/items/' + item.sku);
        """
    )
    assert calls[0].url == "/api/orders/{id}/items/{param2}"


def test_url_identifier_resolved_one_hop():
    calls = _extract(
        """
        const USERS_URL = `/api/users`;
        const alias = USERS_URL;
        axios.get(USERS_URL);
        axios.get(alias);
        axios.get(unknownUrl);
        """
    )
    assert [c.url for c in calls] == ["/api/users"]


def test_non_string_url_dropped():
    calls = _extract(
        """
        axios.get(buildUrl('users'));
        fetch(request);
        """
    )
    assert calls == []


def test_payload_resolution_is_one_level_deep():
    calls = _extract(
        """
        const base = { a: 1 };
        const payload = base;
        axios.post('/api/x', payload);
        """
    )
    assert calls[0].body_fields is None


def test_payload_resolving_to_non_object_has_no_schema():
    calls = _extract(
        """
        const payload = makePayload();
        axios.post('/api/x', payload);
        axios.post('/api/y', missing);
        """
    )
    assert [c.body_fields for c in calls] == [None, None]


def test_parameter_shadows_outer_payload():
    calls = _extract(
        """
        const payload = { outer: true };
        function send(payload) {
          return axios.post('/api/inner', payload);
        }
        axios.post('/api/outer', payload);
        """
    )
    assert calls[0].url == "/api/inner"
    assert calls[0].body_fields is None
    assert _types(calls[1].body_fields) == {"outer": "Boolean"}


def test_typescript_wrappers_unwrapped():
    calls = _extract(
        """
        type Login = { user: string; remember: boolean };
        const body = { user: 'u', remember: false } satisfies Login;
        export const login = () => api.post<Login>('/api/auth/login', body as Login);
        """,
        grammar="typescript",
    )
    assert len(calls) == 1
    assert _types(calls[0].body_fields) == {"user": "String", "remember": "Boolean"}


def test_string_keys_and_duplicates_in_object_literal():
    calls = _extract(
        """
        axios.post('/api/x', { 'first-name': 'a', count: 1, count: 'two', ...rest, [dyn]: 1, go() {} });
        """
    )
    assert _types(calls[0].body_fields) == {"first-name": "String", "count": "String"}


def test_calls_reported_in_source_order_including_nested():
    calls = _extract(
        """
        export default function Page() {
          useEffect(() => {
            axios.get('/api/a').then(() => axios.get('/api/b'));
          }, []);
          return <button onClick={() => fetch('/api/c', { method: 'DELETE' })}>x</button>;
        }
        """
    )
    assert [(c.method, c.url) for c in calls] == [
        ("GET", "/api/a"),
        ("GET", "/api/b"),
        ("DELETE", "/api/c"),
    ]


def test_empty_object_payload_is_an_empty_schema():
    calls = _extract(
        """
        api.post('/api/logout', {});
        """
    )
    assert calls[0].body_fields == {}
