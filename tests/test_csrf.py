"""Tests for switchyard.security.csrf — tokens, exclusions, and the dispatch gate."""

import pytest

from switchyard.errors import CsrfValidationFailure, HTTPError
from switchyard.security.csrf import (
    CSRFConfig,
    CsrfGuard,
    csrf_field,
    csrf_meta,
    get_csrf_token,
    reset_current_token,
    set_current_token,
)

FORM = {"content-type": "application/x-www-form-urlencoded"}


class TestTokens:
    def test_token_created_once_per_session(self) -> None:
        guard = CsrfGuard()
        session: dict = {}
        token = guard.token(session)
        assert len(token) == 64
        assert guard.token(session) == token
        assert session["_csrf_token"] == token

    def test_regenerate(self) -> None:
        guard = CsrfGuard()
        session: dict = {}
        first = guard.token(session)
        second = guard.regenerate(session)
        assert second != first
        assert guard.token(session) == second

    def test_custom_length_and_key(self) -> None:
        guard = CsrfGuard(CSRFConfig(token_length=8, session_key="csrf"))
        session: dict = {}
        assert len(guard.token(session)) == 16
        assert "csrf" in session

    def test_verify(self) -> None:
        guard = CsrfGuard()
        session: dict = {}
        token = guard.token(session)
        assert guard.verify(session, token)
        assert not guard.verify(session, "wrong")
        assert not guard.verify(session, None)
        assert not guard.verify({}, token)


class TestTemplateHelpers:
    def test_outside_request(self) -> None:
        with pytest.raises(LookupError, match="outside a request"):
            get_csrf_token()

    def test_field_and_meta(self) -> None:
        reset = set_current_token('abc"<')
        try:
            assert get_csrf_token() == 'abc"<'
            field = str(csrf_field())
            assert 'name="_csrf_token"' in field
            assert 'value="abc&quot;&lt;"' in field
            assert 'content="abc&quot;&lt;"' in str(csrf_meta())
        finally:
            reset_current_token(reset)


class TestExclusions:
    def test_wildcard(self) -> None:
        guard = CsrfGuard()
        guard.except_(["/api/*", "/webhook/stripe"])
        assert guard.is_excluded("/api/users")
        assert guard.is_excluded("/api/")
        assert guard.is_excluded("/webhook/stripe")
        assert not guard.is_excluded("/webhook/stripe/extra")
        assert not guard.is_excluded("/apiary")

    def test_replace_list(self) -> None:
        guard = CsrfGuard(CSRFConfig(exempt_paths=("/a",)))
        assert guard.is_excluded("/a")
        guard.exempt(["/b"])
        assert not guard.is_excluded("/a")
        assert guard.is_excluded("/b")

    def test_literal_characters_escaped(self) -> None:
        guard = CsrfGuard()
        guard.except_(["/v1.0/hook"])
        assert guard.is_excluded("/v1.0/hook")
        assert not guard.is_excluded("/v1x0/hook")


class TestShouldValidate:
    async def test_safe_methods_skip(self, make_request) -> None:
        guard = CsrfGuard()
        for method in ("GET", "HEAD", "OPTIONS"):
            assert not await guard.should_validate(make_request(method, "/form", {"X-CSRF-Token": "x"}))

    async def test_excluded_path_skips(self, make_request) -> None:
        guard = CsrfGuard()
        guard.except_(["/api/*"])
        request = make_request("POST", "/api/users", {"X-CSRF-Token": "x"})
        assert not await guard.should_validate(request)

    async def test_header_present(self, make_request) -> None:
        assert await CsrfGuard().should_validate(make_request("POST", "/x", {"X-CSRF-Token": ""}))

    async def test_form_field_present(self, make_request) -> None:
        request = make_request("POST", "/x", FORM, b"_csrf_token=abc&name=n")
        assert await CsrfGuard().should_validate(request)

    async def test_same_origin_form_without_token_passes(self, make_request) -> None:
        request = make_request("POST", "/x", {**FORM, "origin": "http://testserver"}, b"name=n")
        assert not await CsrfGuard().should_validate(request)

    async def test_cross_origin_form(self, make_request) -> None:
        request = make_request("POST", "/x", {**FORM, "origin": "https://evil.example"}, b"name=n")
        assert await CsrfGuard().should_validate(request)

    async def test_cross_origin_referer(self, make_request) -> None:
        request = make_request("POST", "/x", {**FORM, "referer": "https://evil.example/page"}, b"name=n")
        assert await CsrfGuard().should_validate(request)

    async def test_subdomain_origin_counts_as_same_origin(self, make_request) -> None:
        request = make_request("POST", "/x", {**FORM, "origin": "https://app.testserver"}, b"name=n")
        assert not await CsrfGuard().should_validate(request)

    async def test_origin_containing_host_counts_as_same_origin(self, make_request) -> None:
        # Containment, not equality: any origin with the host inside it passes
        request = make_request("POST", "/x", {**FORM, "origin": "https://testserver.evil.example"}, b"name=n")
        assert not await CsrfGuard().should_validate(request)

    async def test_referer_containing_host_counts_as_same_origin(self, make_request) -> None:
        headers = {**FORM, "referer": "https://evil.example/?next=testserver"}
        assert not await CsrfGuard().should_validate(make_request("POST", "/x", headers, b"name=n"))

    async def test_empty_host_never_cross_origin(self, make_request) -> None:
        headers = {**FORM, "host": "", "origin": "https://evil.example"}
        request = make_request("POST", "/x", headers, b"name=n")
        assert request.host == ""
        assert not await CsrfGuard().should_validate(request)

    async def test_json_without_header_passes(self, make_request) -> None:
        request = make_request("POST", "/x", {"content-type": "application/json"}, b'{"a": 1}')
        assert not await CsrfGuard().should_validate(request)


class TestSubmittedToken:
    async def test_header_first(self, make_request) -> None:
        request = make_request("POST", "/x", {**FORM, "X-CSRF-Token": " hdr "}, b"_csrf_token=form")
        assert await CsrfGuard().submitted_token(request) == "hdr"

    async def test_alt_header(self, make_request) -> None:
        request = make_request("POST", "/x", {"X-XSRF-Token": "alt"})
        assert await CsrfGuard().submitted_token(request) == "alt"

    async def test_form_field(self, make_request) -> None:
        request = make_request("POST", "/x", FORM, b"_csrf_token=form")
        assert await CsrfGuard().submitted_token(request) == "form"

    async def test_json_field(self, make_request) -> None:
        request = make_request("POST", "/x", {"content-type": "application/json"}, b'{"_csrf_token": "js"}')
        assert await CsrfGuard().submitted_token(request) == "js"

    async def test_invalid_json(self, make_request) -> None:
        request = make_request("POST", "/x", {"content-type": "application/json"}, b"{not json")
        assert await CsrfGuard().submitted_token(request) is None


class TestCheck:
    async def test_correct_token_passes(self, make_request) -> None:
        guard = CsrfGuard()
        session: dict = {}
        token = guard.token(session)
        request = make_request("POST", "/x", {**FORM, "origin": "https://evil.example"}, f"_csrf_token={token}".encode())
        await guard.check(request, session)

    async def test_wrong_token_fails(self, make_request) -> None:
        guard = CsrfGuard()
        session: dict = {}
        guard.token(session)
        request = make_request("POST", "/x", {"X-CSRF-Token": "wrong"})
        with pytest.raises(CsrfValidationFailure) as exc_info:
            await guard.check(request, session)
        assert exc_info.value.status == 419
        assert not exc_info.value.expects_json

    async def test_cross_origin_without_token_fails(self, make_request) -> None:
        guard = CsrfGuard()
        request = make_request("POST", "/x", {**FORM, "origin": "https://evil.example"}, b"name=n")
        with pytest.raises(CsrfValidationFailure):
            await guard.check(request, {})

    async def test_failure_carries_json_expectation(self, make_request) -> None:
        guard = CsrfGuard()
        request = make_request("POST", "/x", {"X-CSRF-Token": "bad", "accept": "application/json"})
        with pytest.raises(CsrfValidationFailure) as exc_info:
            await guard.check(request, {"_csrf_token": "good"})
        assert exc_info.value.expects_json

    async def test_ajax_failure_carries_json_expectation(self, make_request) -> None:
        guard = CsrfGuard()
        request = make_request("DELETE", "/x", {"X-CSRF-Token": "bad", "X-Requested-With": "XMLHttpRequest"})
        with pytest.raises(CsrfValidationFailure) as exc_info:
            await guard.check(request, {"_csrf_token": "good"})
        assert exc_info.value.expects_json


class TestMalformedForm:
    async def test_undecodable_urlencoded_body(self, make_request) -> None:
        request = make_request("POST", "/x", FORM, b"name=\xff\xfe")
        with pytest.raises(HTTPError) as exc_info:
            await CsrfGuard().check(request, {})
        assert exc_info.value.status == 400

    async def test_broken_multipart_body(self, make_request) -> None:
        headers = {"content-type": "multipart/form-data; boundary=xyz"}
        request = make_request("POST", "/x", headers, b"this is not multipart")
        with pytest.raises(HTTPError) as exc_info:
            await CsrfGuard().should_validate(request)
        assert exc_info.value.status == 400

    async def test_multipart_without_boundary(self, make_request) -> None:
        request = make_request("POST", "/x", {"content-type": "multipart/form-data"}, b"a=1")
        with pytest.raises(HTTPError) as exc_info:
            await CsrfGuard().submitted_token(request)
        assert exc_info.value.status == 400
