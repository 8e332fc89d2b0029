"""Reminder routes — scheduling, snoozing, deleting and rate-limited sends."""

from tests.services.fakes import auth


async def test_manual_send_then_rate_limited(client, arrangement, lender, borrower, notifier):
    url = f"/api/v1/arrangements/{arrangement.id}/reminders/send"
    first = await client.post(url, headers=auth(lender))
    assert first.status_code == 200
    assert first.json()["sent"] is True
    assert len(notifier.to(borrower.email)) == 1

    second = await client.post(url, headers=auth(lender), json={"message": "again"})
    assert second.status_code == 429
    error = second.json()["error"]
    assert error["code"] == "RATE_LIMITED"
    assert error["hours_remaining"] == 24


async def test_failed_send_is_502(client, arrangement, lender, notifier):
    notifier.fail = True
    res = await client.post(f"/api/v1/arrangements/{arrangement.id}/reminders/send", headers=auth(lender))
    assert res.status_code == 502
    assert res.json()["error"]["code"] == "NOTIFICATION_FAILED"


async def test_schedule_snooze_delete(client, arrangement, lender, borrower):
    res = await client.post(
        f"/api/v1/arrangements/{arrangement.id}/reminders",
        headers=auth(lender), json={"schedule": "weekly", "message_tone": "neutral"},
    )
    assert res.status_code == 201
    reminder = res.json()
    assert reminder["status"] == "active"

    replacement = (await client.post(
        f"/api/v1/arrangements/{arrangement.id}/reminders", headers=auth(lender), json={},
    )).json()
    listed = (await client.get(f"/api/v1/arrangements/{arrangement.id}/reminders", headers=auth(borrower))).json()
    statuses = {r["id"]: r["status"] for r in listed}
    assert statuses == {reminder["id"]: "inactive", replacement["id"]: "active"}

    res = await client.post(
        f"/api/v1/reminders/{replacement['id']}/snooze", headers=auth(borrower), json={"reason": "Away"},
    )
    assert res.status_code == 200
    assert res.json()["status"] == "snoozed"
    assert res.json()["visible_note"] == "Away"

    res = await client.delete(f"/api/v1/reminders/{replacement['id']}", headers=auth(lender))
    assert res.status_code == 200
    assert res.json()["status"] == "inactive"


async def test_borrower_cannot_schedule(client, arrangement, borrower):
    res = await client.post(f"/api/v1/arrangements/{arrangement.id}/reminders", headers=auth(borrower), json={})
    assert res.status_code == 403


async def test_snooze_in_past(client, arrangement, lender, borrower):
    reminder = (await client.post(
        f"/api/v1/arrangements/{arrangement.id}/reminders", headers=auth(lender), json={},
    )).json()
    res = await client.post(
        f"/api/v1/reminders/{reminder['id']}/snooze",
        headers=auth(borrower), json={"snooze_until": "2020-01-01T00:00:00Z"},
    )
    assert res.status_code == 400
