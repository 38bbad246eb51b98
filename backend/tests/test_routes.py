"""
Tests for API route endpoints.

Tests: /health, /api/payments/*, /api/enrollments/* through the ASGI app
with an in-memory catalog and a mocked Razorpay gateway.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import uuid

import pytest
from sqlalchemy import func, select

from config import settings
from db_models import Enrollment
from utils.signatures import compute_payment_signature


def _verify_body(course_id, order_id="order_abc", payment_id="pay_xyz", secret="s3cret"):
    return {
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": compute_payment_signature(order_id, payment_id, secret),
        "courseId": course_id,
    }


async def _enrollment_count(db):
    return (await db.execute(select(func.count()).select_from(Enrollment))).scalar()


class TestHealthEndpoint:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_health_returns_200(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] is True


class TestCheckoutConfig:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_config_exposes_public_key_only(self, client):
        response = await client.get("/api/payments/config")
        assert response.status_code == 200
        data = response.json()
        assert data == {
            "keyId": settings.razorpay_key_id,
            "currency": "INR",
            "checkoutName": settings.checkout_name,
        }
        assert settings.razorpay_key_secret not in response.text


class TestCreateOrder:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_success(self, client, paid_course, auth_headers, mock_gateway):
        response = await client.post(
            "/api/payments/create-order",
            json={"courseId": paid_course.id},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"orderId", "amount", "currency", "courseName", "keyId"}
        assert data["amount"] == 49900
        assert data["currency"] == "INR"
        assert data["courseName"] == paid_course.title
        assert data["keyId"] == "rzp_test_publickey"
        assert settings.razorpay_key_secret not in response.text

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_client_amount_is_ignored(self, client, paid_course, auth_headers, mock_gateway):
        response = await client.post(
            "/api/payments/create-order",
            json={"courseId": paid_course.id, "amount": 1, "price": 0.01},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert mock_gateway.call_args.kwargs["amount"] == 49900

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_session_cookie_accepted(self, client, paid_course, mock_gateway):
        from middleware.auth import issue_access_token

        client.cookies.set(settings.session_cookie_name, issue_access_token(user_id=str(uuid.uuid4())))
        response = await client.post(
            "/api/payments/create-order",
            json={"courseId": paid_course.id},
        )
        assert response.status_code == 200

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_unauthenticated_401(self, client, paid_course, mock_gateway):
        response = await client.post("/api/payments/create-order", json={"courseId": paid_course.id})
        assert response.status_code == 401
        assert response.json()["success"] is False
        assert isinstance(response.json()["error"], str)
        mock_gateway.assert_not_called()

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_garbage_token_401(self, client, paid_course, mock_gateway):
        response = await client.post(
            "/api/payments/create-order",
            json={"courseId": paid_course.id},
            headers={"Authorization": "Bearer not.a.jwt"},
        )
        assert response.status_code == 401

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_missing_course_id_400(self, client, auth_headers, mock_gateway):
        response = await client.post("/api/payments/create-order", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_request"
        assert "courseId" in response.json()["error"]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_malformed_course_id_400(self, client, users, auth_headers, mock_gateway):
        response = await client.post(
            "/api/payments/create-order", json={"courseId": "../etc/passwd"}, headers=auth_headers
        )
        assert response.status_code == 400

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_non_string_course_id_400(self, client, auth_headers, mock_gateway):
        response = await client.post(
            "/api/payments/create-order", json={"courseId": 42}, headers=auth_headers
        )
        assert response.status_code == 400

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_unknown_course_404(self, client, users, auth_headers, mock_gateway):
        response = await client.post(
            "/api/payments/create-order", json={"courseId": str(uuid.uuid4())}, headers=auth_headers
        )
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_flagged_course_400(self, client, make_course, auth_headers, mock_gateway):
        course = await make_course(is_flagged=True)
        response = await client.post(
            "/api/payments/create-order", json={"courseId": course.id}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["code"] == "not_purchasable"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_free_course_400(self, client, make_course, auth_headers, mock_gateway):
        course = await make_course(price="0")
        response = await client.post(
            "/api/payments/create-order", json={"courseId": course.id}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["code"] == "free_course_not_payable"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_already_enrolled_400(self, client, paid_course, auth_headers, mock_gateway):
        verify = await client.post(
            "/api/payments/verify", json=_verify_body(paid_course.id), headers=auth_headers
        )
        assert verify.status_code == 200

        response = await client.post(
            "/api/payments/create-order", json={"courseId": paid_course.id}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["code"] == "already_enrolled"
        mock_gateway.assert_not_called()

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_gateway_error_500_without_provider_detail(
        self, client, paid_course, auth_headers, mock_gateway
    ):
        from domain.errors import GatewayError

        mock_gateway.side_effect = GatewayError()
        response = await client.post(
            "/api/payments/create-order", json={"courseId": paid_course.id}, headers=auth_headers
        )
        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Failed to create payment order",
            "code": "gateway_error",
        }


class TestVerifyPayment:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_success(self, client, db_session, paid_course, auth_headers):
        response = await client.post(
            "/api/payments/verify", json=_verify_body(paid_course.id), headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Payment verified and enrollment created",
            "alreadyEnrolled": False,
        }
        assert await _enrollment_count(db_session) == 1

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_replay_is_success_shaped(self, client, db_session, paid_course, auth_headers):
        body = _verify_body(paid_course.id)
        first = await client.post("/api/payments/verify", json=body, headers=auth_headers)
        second = await client.post("/api/payments/verify", json=body, headers=auth_headers)

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json()["success"] is True
        assert second.json()["alreadyEnrolled"] is True
        assert second.json()["message"] == "Already enrolled in this course"
        assert await _enrollment_count(db_session) == 1

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_wrong_secret_400(self, client, db_session, paid_course, auth_headers):
        response = await client.post(
            "/api/payments/verify",
            json=_verify_body(paid_course.id, secret="not-s3cret"),
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_signature"
        assert await _enrollment_count(db_session) == 0

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_bad_signature_rejected_even_without_session(self, client, paid_course):
        response = await client.post(
            "/api/payments/verify", json=_verify_body(paid_course.id, secret="not-s3cret")
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_signature"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_good_signature_without_session_401(self, client, db_session, paid_course):
        response = await client.post("/api/payments/verify", json=_verify_body(paid_course.id))
        assert response.status_code == 401
        assert await _enrollment_count(db_session) == 0

    @pytest.mark.api
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "missing", ["razorpay_order_id", "razorpay_payment_id", "razorpay_signature", "courseId"]
    )
    async def test_missing_field_400(self, client, paid_course, auth_headers, missing):
        body = _verify_body(paid_course.id)
        body.pop(missing)
        response = await client.post("/api/payments/verify", json=body, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_request"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_empty_field_400(self, client, paid_course, auth_headers):
        body = _verify_body(paid_course.id)
        body["razorpay_signature"] = ""
        response = await client.post("/api/payments/verify", json=body, headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_unknown_course_404(self, client, users, auth_headers):
        response = await client.post(
            "/api/payments/verify", json=_verify_body(str(uuid.uuid4())), headers=auth_headers
        )
        assert response.status_code == 404

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_invalid_json_400(self, client, auth_headers):
        response = await client.post(
            "/api/payments/verify",
            content=b"{not json",
            headers={**auth_headers, "Content-Type": "application/json"},
        )
        assert response.status_code == 400


class TestFullCheckoutFlow:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_order_then_verify(self, client, db_session, make_course, auth_headers, mock_gateway):
        course = await make_course(price="1200.00")

        order = await client.post(
            "/api/payments/create-order", json={"courseId": course.id}, headers=auth_headers
        )
        assert order.status_code == 200
        assert order.json()["amount"] == 120000

        # Razorpay checkout hands the browser a signed confirmation for this order
        order_id = order.json()["orderId"]
        verify = await client.post(
            "/api/payments/verify",
            json=_verify_body(course.id, order_id=order_id, payment_id="pay_live01"),
            headers=auth_headers,
        )
        assert verify.status_code == 200
        assert verify.json()["success"] is True

        mine = await client.get("/api/enrollments/me", headers=auth_headers)
        assert mine.status_code == 200
        enrollments = mine.json()["enrollments"]
        assert len(enrollments) == 1
        assert enrollments[0]["courseId"] == course.id
        assert enrollments[0]["paymentId"] == "pay_live01"
        assert enrollments[0]["amountPaid"] == "1200.00"


class TestEnrollmentEndpoints:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_free_enrollment(self, client, make_course, auth_headers):
        course = await make_course(price="0")
        response = await client.post(
            "/api/enrollments/free", json={"courseId": course.id}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["alreadyEnrolled"] is False

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_free_enrollment_requires_auth(self, client, make_course):
        course = await make_course(price="0")
        response = await client.post("/api/enrollments/free", json={"courseId": course.id})
        assert response.status_code == 401

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_my_enrollments_scoped_to_caller(
        self, client, make_course, auth_headers, other_auth_headers
    ):
        course = await make_course(price="0")
        await client.post("/api/enrollments/free", json={"courseId": course.id}, headers=auth_headers)

        mine = await client.get("/api/enrollments/me", headers=auth_headers)
        theirs = await client.get("/api/enrollments/me", headers=other_auth_headers)
        assert len(mine.json()["enrollments"]) == 1
        assert theirs.json()["enrollments"] == []

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_my_enrollments_requires_auth(self, client):
        response = await client.get("/api/enrollments/me")
        assert response.status_code == 401


class TestRateLimit:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_create_order_throttled(self, client, paid_course, auth_headers, mock_gateway):
        statuses = []
        for _ in range(21):
            response = await client.post(
                "/api/payments/create-order", json={"courseId": paid_course.id}, headers=auth_headers
            )
            statuses.append(response.status_code)
        assert statuses[:20] == [200] * 20
        assert statuses[20] == 429
        assert response.json()["code"] == "rate_limited"
        assert response.headers["Retry-After"] == "60"
        assert response.headers["X-RateLimit-Limit"] == "20"
        assert response.headers["X-RateLimit-Remaining"] == "0"
