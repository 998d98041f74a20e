def test_get_missing_schedule(client):
    resp = client.get("/api/schedule/999")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Schedule 999 not found", "error": "NotFound"}


def test_slot_shape_uses_camel_case(service, client):
    service.registry.create_program("Computer Science", "Engineering", "CSE")
    service.registry.create_subject("Operating Systems", "CS305", 1, 40, 20)
    schedule = client.post(
        "/api/schedule/generate?startDate=2025-05-22&endDate=2025-05-22&scheduleName=Finals",
        json={"programIds": ["1"]},
    ).json()
    assert schedule["status"] == "pending"
    assert schedule["slotCount"] == 1

    [slot] = client.get(f"/api/schedule/{schedule['id']}/slots").json()
    assert set(slot) >= {
        "id", "examDate", "startTime", "endTime", "reportingTime", "slotType", "subject", "room",
        "faculty", "examHead", "invigilators", "studentCount", "isMorningSlot",
    }
    assert slot["examDate"] == "2025-05-22"
    assert slot["startTime"] == "09:00:00"
    assert slot["reportingTime"] == "08:30:00"
    assert slot["slotType"] == "MIXED"
    assert slot["studentCount"] == 60
    assert slot["room"] is None and slot["invigilators"] == []


def test_empty_stats_are_zero_not_errors(client):
    stats = client.get("/api/exams/stats")
    assert stats.status_code == 200
    body = stats.json()
    assert (body["totalExams"], body["upcomingExams"], body["pendingExams"]) == (0, 0, 0)
    assert client.get("/api/exams/subject-distribution").json() == []
    assert client.get("/api/schedule/faculty/available?date=2025-05-23&startTime=09:00&endTime=11:00").json() == []
