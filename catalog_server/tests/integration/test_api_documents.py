from catalog_server.app.platform.exceptions import TransportError


DOC = {
    "unique_id": "product_1",
    "object_id": 1,
    "object_type": "product",
    "fields": [{"name": "price", "value": "9.5", "type": "float"}],
}


def _ops(transport):
    return [(o.op, o.doc_id, o.query) for o in transport.update.call_args.args[0].operations]


def test_add_document(api, transport):
    r = api.post("/api/documents", json=DOC)

    assert r.status_code == 200
    assert r.json()["message"] == "문서 색인 성공"
    batch = transport.update.call_args.args[0]
    assert batch.documents[0]["price_f"] == 9.5
    assert batch.has_commit


def test_add_document_without_unique_id(api, transport):
    r = api.post("/api/documents", json={**DOC, "unique_id": ""})

    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_INPUT"
    transport.update.assert_not_called()


def test_add_document_with_bad_value(api):
    doc = {**DOC, "fields": [{"name": "created", "value": "yesterday", "type": "datetime"}]}

    r = api.post("/api/documents", json=doc)

    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_FIELD"


def test_delete_one(api, transport):
    r = api.delete("/api/documents/product_1")

    assert r.status_code == 200
    assert _ops(transport) == [("delete_id", "product_1", None), ("commit", None, None)]


def test_delete_many_by_ids_and_field(api, transport):
    r = api.post("/api/documents/delete", json={"ids": ["a", "b"]})
    assert r.status_code == 200
    assert [op for op, _, _ in _ops(transport)] == ["delete_id", "delete_id", "commit"]

    r = api.post("/api/documents/delete", json={"field": "brand_s", "value": "Acme"})
    assert r.status_code == 200
    assert _ops(transport)[0] == ("delete_query", None, "brand_s:Acme")


def test_delete_many_requires_condition(api):
    r = api.post("/api/documents/delete", json={})
    assert r.status_code == 400


def test_engine_failure_is_502(api, transport):
    transport.update.side_effect = TransportError("down", status_code=503)

    r = api.delete("/api/documents/product_1")

    assert r.status_code == 502
    assert r.json()["error"]["code"] == "ENGINE_UNAVAILABLE"


def test_api_key_required_when_configured(secured_api, transport):
    r = secured_api.delete("/api/documents/product_1")
    assert r.status_code == 401
    transport.update.assert_not_called()

    r = secured_api.delete("/api/documents/product_1", headers={"X-API-Key": "secret"})
    assert r.status_code == 200
