"""Tests for response envelopes and ASGI sending."""

from typing import Any, Dict, List

import orjson

from plantgate.core.response import Response


class TestEnvelopes:
    def test_success(self) -> None:
        response = Response().success({"id": 1}, "User found")
        assert response.status_code == 200
        assert response.data == {"status_code": 200, "message": "User found", "data": {"id": 1}}
        assert response.get_content_type() == "application/json"

    def test_success_without_data(self) -> None:
        assert Response().success(None, "Logout successful").data == {
            "status_code": 200,
            "message": "Logout successful",
        }

    def test_error(self) -> None:
        response = Response().error("Invalid token", 401)
        assert response.status_code == 401
        assert response.data == {"status_code": 401, "message": "Invalid token"}

    def test_validation_errors_hidden_by_default(self) -> None:
        response = Response().validation_error({"title": ["The title field is required."]})
        assert response.status_code == 422
        assert "errors" not in response.data

    def test_validation_errors_exposed(self) -> None:
        errors = {"title": ["The title field is required."]}
        response = Response(expose_errors=True).validation_error(errors)
        assert response.data["errors"] == errors

    def test_created_is_200(self) -> None:
        response = Response().created(None, "Log entry created successfully")
        assert response.status_code == 200
        assert response.data["status_code"] == 200

    def test_method_not_allowed_sets_allow(self) -> None:
        response = Response().method_not_allowed("Method not allowed: POST", ["GET", "PUT"])
        assert response.status_code == 405
        assert response.get_header("Allow") == "GET, PUT"

    def test_shortcuts(self) -> None:
        assert Response().bad_request().status_code == 400
        assert Response().unauthorized().status_code == 401
        assert Response().forbidden().status_code == 403
        assert Response().not_found().status_code == 404
        assert Response().server_error().status_code == 500

    def test_paginate(self) -> None:
        response = Response().paginate([1, 2], total=5, per_page=2, current_page=1)
        assert response.data["meta"]["last_page"] == 3

    def test_redirect(self) -> None:
        response = Response().redirect("/login")
        assert response.status_code == 302
        assert response.get_header("Location") == "/login"


class TestHeaders:
    def test_case_insensitive_replace(self) -> None:
        response = Response()
        response.set_header("X-Request-ID", "a")
        response.set_header("x-request-id", "b")
        assert response.get_header("X-REQUEST-ID") == "b"

    def test_append(self) -> None:
        response = Response()
        response.set_header("Vary", "Origin")
        response.set_header("Vary", "Accept", replace=False)
        assert response.get_header("Vary") == "Origin, Accept"

    def test_remove(self) -> None:
        response = Response().set_header("X-Debug", "1").remove_header("x-debug")
        assert not response.has_header("X-Debug")

    def test_cors(self) -> None:
        response = Response().enable_cors(origin="https://mes.example", credentials=True, max_age=600)
        assert response.get_header("Access-Control-Allow-Origin") == "https://mes.example"
        assert response.get_header("Access-Control-Allow-Credentials") == "true"
        assert response.get_header("Access-Control-Max-Age") == "600"

    def test_no_cache(self) -> None:
        response = Response().no_cache()
        assert response.get_header("Cache-Control") == "private, no-cache, no-store, must-revalidate"
        assert response.get_header("Expires") == "0"


class TestSend:
    async def capture(self, response: Response) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = []

        async def send(message):
            messages.append(message)

        await response.send(send)
        return messages

    async def test_json_body_and_length(self) -> None:
        response = Response().success({"id": 1})
        start, body = await self.capture(response)

        assert start["type"] == "http.response.start"
        assert start["status"] == 200
        headers = dict(start["headers"])
        assert headers[b"content-type"] == b"application/json"
        assert headers[b"content-length"] == str(len(body["body"])).encode()
        assert orjson.loads(body["body"]) == {"status_code": 200, "message": "Success", "data": {"id": 1}}
        assert response.sent

    async def test_no_content_has_empty_body(self) -> None:
        start, body = await self.capture(Response().no_content())
        assert start["status"] == 204
        assert body["body"] == b""

    async def test_cookie_header(self) -> None:
        response = Response().set_cookie("session", "abc", max_age=60)
        start, _ = await self.capture(response)
        cookies = [value for name, value in start["headers"] if name == b"set-cookie"]
        assert cookies == [b"session=abc; Max-Age=60; Path=/; HttpOnly; SameSite=Lax"]

    async def test_string_content(self) -> None:
        _, body = await self.capture(Response("plain text"))
        assert body["body"] == b"plain text"
