import unittest

from fastapi.testclient import TestClient

from fakes import FakeGenerator, FakeMailer

from quotecraft_backend.errors import GenerationError
from quotecraft_backend.main import UNHELPFUL_OUTPUT_MESSAGE, create_app
from quotecraft_backend.subscriptions import InMemorySubscriptionStore


QUOTE = "Courage is grace under pressure, and it grows with every step."


class ApiTestCase(unittest.TestCase):
    cron_secret = ""

    def setUp(self):
        self.generator = FakeGenerator(QUOTE)
        self.mailer = FakeMailer()
        self.store = InMemorySubscriptionStore()
        app = create_app(
            generator=self.generator,
            mailer=self.mailer,
            store=self.store,
            cron_secret=self.cron_secret,
        )
        self.client = TestClient(app)


class GenerateQuoteTests(ApiTestCase):
    def test_returns_quote(self):
        response = self.client.post(
            "/api/generate-quote",
            json={
                "quoteType": "a quote about perseverance for entrepreneurs",
                "tone": "inspirational",
                "famousPerson": "Maya Angelou",
            },
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"quote": QUOTE})
        prompt = self.generator.prompts[0]
        self.assertIn("The tone should be inspirational.", prompt)
        self.assertIn("said by Maya Angelou.", prompt)

    def test_gibberish_tone_is_rejected_before_generation(self):
        response = self.client.post(
            "/api/generate-quote",
            json={"quoteType": "a quote about perseverance", "tone": "zzz"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json(),
            {"message": 'The tone you entered ("zzz") appears to be missing vowels.'},
        )
        self.assertEqual(self.generator.prompts, [])

    def test_gibberish_description_is_rejected(self):
        response = self.client.post("/api/generate-quote", json={"quoteType": "xyzqwplkrtvbnm"})
        self.assertEqual(response.status_code, 400)
        self.assertIn('The quote description you entered ("xyzqwplkrtvbnm")', response.json()["message"])

    def test_structural_validation_errors_are_flattened(self):
        response = self.client.post(
            "/api/generate-quote",
            json={"quoteType": "short", "tone": "x" * 51},
        )
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body["message"], "Invalid input.")
        self.assertEqual(
            body["errors"]["quoteType"],
            ["Please describe the type of quote in at least 10 characters."],
        )
        self.assertEqual(body["errors"]["tone"], ["Tone cannot exceed 50 characters."])

    def test_unhelpful_output_is_rejected(self):
        self.generator.quote = "I cannot create a quote for that request."
        response = self.client.post("/api/generate-quote", json={"quoteType": "a quote about perseverance"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"message": UNHELPFUL_OUTPUT_MESSAGE})

    def test_generation_failure_keeps_provider_status(self):
        self.generator.quote = GenerationError("Resource has been exhausted", status_code=429)
        response = self.client.post("/api/generate-quote", json={"quoteType": "a quote about perseverance"})
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json(), {"message": "Resource has been exhausted"})


class SendEmailTests(ApiTestCase):
    def test_sends_quote(self):
        response = self.client.post("/api/send-email", json={"email": "reader@example.com", "quote": QUOTE})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Quote sent successfully to your email!")
        self.assertEqual(self.mailer.sent[0]["to"], "reader@example.com")

    def test_invalid_address(self):
        response = self.client.post("/api/send-email", json={"email": "not-an-email", "quote": QUOTE})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"]["email"], ["Invalid email address format."])

    def test_delivery_failure(self):
        self.mailer.failing_recipients.add("reader@example.com")
        response = self.client.post("/api/send-email", json={"email": "reader@example.com", "quote": QUOTE})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["message"], "Email service error: mailbox unavailable")


class SubscriptionFlowTests(ApiTestCase):
    payload = {
        "email": "reader@example.com",
        "quote": QUOTE,
        "tone": "hopeful",
        "quoteType": "quotes about new beginnings",
    }

    def test_subscribe_sends_confirmation_with_unsubscribe_link(self):
        response = self.client.post("/api/subscribe", json=self.payload)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"message": "Successfully subscribed! A confirmation email has been sent."},
        )
        [subscription] = self.store.list_active()
        confirmation = self.mailer.sent[0]
        self.assertEqual(confirmation["quote"], QUOTE)
        self.assertTrue(confirmation["unsubscribe_url"].endswith(f"/api/unsubscribe?id={subscription.id}"))

    def test_subscribing_twice_keeps_one_row(self):
        self.client.post("/api/subscribe", json=self.payload)
        self.client.post("/api/subscribe", json=self.payload)
        self.assertEqual(len(self.store.list_active()), 1)

    def test_gibberish_subscription_is_rejected(self):
        response = self.client.post("/api/subscribe", json={**self.payload, "tone": "qwrtzp"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.store.list_active(), [])
        self.assertEqual(self.mailer.sent, [])

    def test_unsubscribe(self):
        self.client.post("/api/subscribe", json=self.payload)
        [subscription] = self.store.list_active()

        response = self.client.get("/api/unsubscribe", params={"id": subscription.id})

        self.assertEqual(response.status_code, 200)
        self.assertIn("Unsubscribed", response.text)
        self.assertEqual(self.store.list_active(), [])

    def test_unsubscribe_without_id(self):
        response = self.client.get("/api/unsubscribe")
        self.assertEqual(response.status_code, 400)
        self.assertIn("Subscription ID is missing.", response.text)

    def test_check_email(self):
        self.client.post("/api/subscribe", json=self.payload)
        known = self.client.post("/api/auth/check-email", json={"email": "reader@example.com"})
        unknown = self.client.post("/api/auth/check-email", json={"email": "new@example.com"})
        self.assertEqual(known.json(), {"exists": True})
        self.assertEqual(unknown.json(), {"exists": False})

    def test_daily_cron(self):
        self.client.post("/api/subscribe", json=self.payload)
        response = self.client.get("/api/cron/send-daily-quotes")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["message"], "Processed 1 subscriptions.")
        self.assertEqual(body["sent"], 1)
        self.assertEqual(len(self.mailer.sent), 2)

    def test_daily_cron_without_subscriptions(self):
        response = self.client.get("/api/cron/send-daily-quotes")
        self.assertEqual(response.json()["message"], "No active subscriptions to process.")


class CronSecretTests(ApiTestCase):
    cron_secret = "s3cret"

    def test_requires_bearer_token(self):
        self.assertEqual(self.client.get("/api/cron/send-daily-quotes").status_code, 401)
        response = self.client.get(
            "/api/cron/send-daily-quotes",
            headers={"Authorization": "Bearer s3cret"},
        )
        self.assertEqual(response.status_code, 200)


class HealthTests(ApiTestCase):
    def test_reports_services(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")


if __name__ == "__main__":
    unittest.main()
