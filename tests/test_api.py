from exam_allocation import config


def seed_payload():
    return {
        "programs": [{"id": 1, "name": "Computer Science", "department": "Engineering", "code": "CSE"}],
        "rooms": [
            {"id": 1, "roomNumber": "LH-50", "building": "Main", "floor": 1, "seatingCapacity": 50},
            {"id": 2, "roomNumber": "LH-70", "building": "Main", "floor": 2, "seatingCapacity": 70},
        ],
        "faculty": [
            {"id": 1, "name": "Dr. Rao", "department": "CSE", "workloadCapacity": 6, "isExamHead": True},
            {"id": 2, "name": "Dr. Iyer", "department": "CSE", "workloadCapacity": 6},
            {"id": 3, "name": "Dr. Sen", "department": "CSE", "workloadCapacity": 6},
            {"id": 4, "name": "Dr. Das", "department": "CSE", "workloadCapacity": 6},
        ],
        "subjects": [
            {"id": 1, "name": "Operating Systems", "code": "CS305", "programId": 1, "regularStudents": 60},
        ],
    }


def make_finals(client):
    resp = client.post(
        "/api/schedule/generate?startDate=2025-05-22&endDate=2025-05-29&scheduleName=Finals",
        json={"programIds": [], "includeWeekends": False},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def add_slot(client, schedule_id, start="09:00", end="11:00", count=60):
    resp = client.post(f"/api/schedule/{schedule_id}/slots", json={
        "examDate": "2025-05-23", "startTime": start, "endTime": end, "subjectId": 1, "studentCount": count,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_finals_scenario_allocates_seventy_seat_room(service, client):
    service.load_seed(seed_payload())
    schedule = make_finals(client)
    slot = add_slot(client, schedule["id"])

    resp = client.put(f"/api/schedule/slots/{slot['id']}/allocate", json={"assignRoom": True})

    assert resp.status_code == 200, resp.text
    assert resp.json()["room"]["roomNumber"] == "LH-70"


def test_allocate_all_with_room_shortage(service, client):
    service.load_seed(seed_payload())
    service.registry.create_room("LH-90", 90)
    schedule = make_finals(client)
    # The generated slot plus two more at 09:00 on the 23rd
    generated = client.get(f"/api/schedule/{schedule['id']}/slots").json()
    assert len(generated) == 1
    client.delete(f"/api/schedule/slots/{generated[0]['id']}")
    for _ in range(3):
        add_slot(client, schedule["id"])

    resp = client.post(f"/api/schedule/{schedule['id']}/allocate-all", json={"assignRoom": True})

    assert resp.status_code == 200
    body = resp.json()
    assert body["totalSlots"] == 3
    assert body["successfulAllocations"] == 2
    assert body["failedAllocations"] == 1
    failed = [s for s in body["slots"] if not s["success"]]
    assert failed[0]["reason"] == "NoRoomAvailable"
    assert failed[0]["room"] == ""


def test_manual_assignment_flow(service, client):
    service.load_seed(seed_payload())
    schedule = make_finals(client)
    first = add_slot(client, schedule["id"])
    second = add_slot(client, schedule["id"], start="10:00", end="12:00")

    resp = client.put(f"/api/schedule/slots/{first['id']}/faculty", json={"facultyId": 2})
    assert resp.status_code == 200
    assert resp.json()["faculty"]["name"] == "Dr. Iyer"

    resp = client.put(f"/api/schedule/slots/{second['id']}/faculty", json={"facultyId": 2})
    assert resp.status_code == 409
    assert resp.json()["error"] == "Conflict"

    resp = client.put(f"/api/schedule/slots/{first['id']}/examHead", json={"facultyId": 1})
    assert resp.json()["examHead"]["id"] == 1

    resp = client.post(f"/api/schedule/slots/{first['id']}/invigilators", json={"facultyId": 3})
    assert [i["id"] for i in resp.json()["invigilators"]] == [3]

    resp = client.delete(f"/api/schedule/slots/{first['id']}/invigilators/3")
    assert resp.json()["invigilators"] == []
    assert client.delete(f"/api/schedule/slots/{first['id']}/invigilators/3").status_code == 404

    resp = client.put(f"/api/schedule/slots/{first['id']}/room", json={"roomId": 2})
    assert resp.json()["room"]["capacity"] == 70
    assert client.put(f"/api/schedule/slots/{second['id']}/room", json={"roomId": 2}).status_code == 409


def test_available_faculty_and_rooms_queries(service, client):
    service.load_seed(seed_payload())
    schedule = make_finals(client)
    slot = add_slot(client, schedule["id"])
    client.put(f"/api/schedule/slots/{slot['id']}/faculty", json={"facultyId": 4})

    resp = client.get("/api/schedule/faculty/available?date=2025-05-23&startTime=09:00&endTime=11:00")
    assert resp.status_code == 200
    assert 4 not in [f["id"] for f in resp.json()]

    heads = client.get(
        "/api/schedule/faculty/available?date=2025-05-23&startTime=09:00&endTime=11:00&role=examHead"
    ).json()
    assert [f["id"] for f in heads] == [1]

    rooms = client.get("/api/rooms/available?date=2025-05-23&startTime=09:00&endTime=11:00&minCapacity=60")
    assert [r["roomNumber"] for r in rooms.json()] == ["LH-70"]

    bad = client.get("/api/schedule/faculty/available?date=2025-05-23&startTime=11:00&endTime=09:00")
    assert bad.status_code == 422
    assert bad.json()["error"] == "ValidationError"


def test_faculty_availability_declaration(service, client):
    service.load_seed(seed_payload())
    resp = client.post("/api/schedule/faculty/2/availability",
                       json={"date": "2025-05-23", "startTime": "08:00", "endTime": "13:00"})
    assert resp.status_code == 201
    assert resp.json()["faculty"]["name"] == "Dr. Iyer"

    elsewhere = client.get("/api/schedule/faculty/available?date=2025-05-24&startTime=09:00&endTime=11:00")
    assert 2 not in [f["id"] for f in elsewhere.json()]


def test_room_crud_and_availability_toggle(client):
    resp = client.post("/api/rooms", json={"roomNumber": "B-201", "building": "Block B", "floor": "2",
                                           "seatingCapacity": 45, "roomType": "LAB"})
    assert resp.status_code == 201
    room = resp.json()
    assert room["status"] == "available"

    resp = client.put(f"/api/rooms/{room['id']}/availability", json={"isAvailable": False})
    assert resp.json()["isAvailable"] is False
    assert resp.json()["status"] == "unavailable"

    assert client.get("/api/rooms/stats/total-rooms").json() == {"totalRooms": 1}
    assert client.get("/api/rooms/stats/total-capacity").json() == {"totalCapacity": 45}
    assert client.get("/api/rooms/stats/available-rooms").json() == {"availableRooms": 0}

    assert client.delete(f"/api/rooms/{room['id']}").status_code == 204
    assert client.get(f"/api/rooms/{room['id']}").status_code == 404
    assert client.post("/api/rooms", json={"roomNumber": "X", "seatingCapacity": -1}).status_code == 422


def test_students_and_stats(service, client):
    service.load_seed(seed_payload())
    payload = {"studentId": "CS-001", "name": "Asha", "email": "asha@example.edu",
               "program": {"id": 1}, "semester": 5}
    created = client.post("/api/students", json=payload)
    assert created.status_code == 201
    assert created.json()["program"]["name"] == "Computer Science"
    assert client.post("/api/students", json=payload).status_code == 409

    assert client.get("/api/students/stats/total").json() == {"totalStudents": 1}
    assert client.get("/api/students/stats/by-program").json() == {
        "studentsByProgram": {"Computer Science": 1}, "totalPrograms": 1,
    }
    assert client.get("/api/students/stats/by-semester").json() == {"studentsBySemester": {"5": 1}}

    student_pk = created.json()["id"]
    updated = client.put(f"/api/students/{student_pk}", json={**payload, "semester": 6})
    assert updated.json()["semester"] == 6
    assert client.delete(f"/api/students/{student_pk}").status_code == 204


def test_subjects_by_program(service, client):
    service.load_seed(seed_payload())
    subjects = client.get("/api/subjects/program/1").json()
    assert [s["code"] for s in subjects] == ["CS305"]
    assert subjects[0]["totalStudents"] == 60
    assert client.get("/api/subjects/program/9").status_code == 404


def test_reporting_endpoints(service, client):
    service.load_seed(seed_payload())
    schedule = make_finals(client)
    slot = client.get(f"/api/schedule/{schedule['id']}/slots").json()[0]
    client.put(f"/api/schedule/slots/{slot['id']}/allocate",
               json={"assignRoom": True, "assignFaculty": True, "assignInvigilators": True})

    stats = client.get("/api/exams/stats").json()
    assert stats["totalExams"] == 1 and stats["pendingExams"] == 0

    in_range = client.get("/api/exams/stats/range?startDate=2025-05-22&endDate=2025-05-29").json()
    assert in_range["totalExamsInRange"] == 1

    distribution = client.get("/api/exams/subject-distribution").json()
    assert distribution == [{"subjectId": 1, "subject": "Operating Systems", "code": "CS305", "count": 1}]

    assert len(client.get("/api/exams/subject/CS305").json()) == 1
    assert len(client.get("/api/exams/upcoming").json()) == 1
    assert len(client.get("/api/exams/upcoming/subject/Operating%20Systems").json()) == 1

    faculty_slots = client.get("/api/exams/slots/faculty").json()
    assert faculty_slots[0]["faculty"]["workload"] == 1
    assert len(faculty_slots[0]["invigilators"]) == 2

    workload = {row["id"]: row for row in client.get("/api/exams/faculty/workload").json()}
    assert sum(row["currentWorkload"] for row in workload.values()) == 4

    exams = client.get(f"/api/exams/schedule/{schedule['id']}").json()
    assert exams[0]["room"] == "LH-70"


def test_export_and_email(service, client):
    service.load_seed(seed_payload())
    schedule = make_finals(client)
    exported = client.get(f"/api/schedule/{schedule['id']}/export")
    assert exported.status_code == 200
    assert exported.json()["success"] is True
    emailed = client.post(f"/api/schedule/{schedule['id']}/email")
    assert emailed.json()["action"] == "email"
    assert client.post("/api/schedule/999/email").status_code == 404


def test_mutations_require_permission_when_token_configured(client, monkeypatch):
    monkeypatch.setattr(config, "ADMIN_TOKEN", "s3cret")
    payload = {"roomNumber": "C-1", "seatingCapacity": 30}

    assert client.post("/api/rooms", json=payload).status_code == 403
    assert client.post("/api/rooms", json=payload, headers={"X-Admin-Token": "wrong"}).status_code == 403
    assert client.post("/api/rooms", json=payload, headers={"X-Admin-Token": "s3cret"}).status_code == 201
    # Reads stay open
    assert client.get("/api/rooms").status_code == 200


def test_room_edit_keeps_booked_slots_seated(service, client):
    service.load_seed(seed_payload())
    schedule = make_finals(client)
    slot = add_slot(client, schedule["id"])
    client.put(f"/api/schedule/slots/{slot['id']}/room", json={"roomId": 2})

    resp = client.put("/api/rooms/2", json={"roomNumber": "LH-70", "seatingCapacity": 10})

    assert resp.status_code == 409
    assert client.get("/api/rooms/2").json()["seatingCapacity"] == 70


def test_faculty_created_without_capacity_can_be_allocated(service, client):
    service.load_seed(seed_payload())
    created = client.post("/api/faculty", json={"name": "Dr. New", "department": "CSE", "isExamHead": True})
    assert created.json()["workloadCapacity"] == config.DEFAULT_WORKLOAD_CAPACITY > 0

    service.registry.delete_faculty(1)
    schedule = make_finals(client)
    slot = add_slot(client, schedule["id"])
    resp = client.put(f"/api/schedule/slots/{slot['id']}/allocate", json={"assignFaculty": True})

    assert resp.status_code == 200, resp.text
    assert resp.json()["examHead"]["name"] == "Dr. New"


def test_exam_records_lifecycle(service, client):
    service.load_seed(seed_payload())
    payload = {"examName": "OS Midterm", "subject": "cs305", "examDate": "2025-05-23",
               "startTime": "10:00", "duration": 90}

    created = client.post("/api/exams", json=payload)
    assert created.status_code == 201, created.text
    exam = created.json()
    assert exam["status"] == "Pending"
    assert exam["subjectEntity"] == {"id": 1, "name": "Operating Systems", "code": "CS305"}

    assert [e["examName"] for e in client.get("/api/exams").json()] == ["OS Midterm"]
    assert client.get(f"/api/exams/{exam['id']}").json()["duration"] == 90

    edited = client.put(f"/api/exams/{exam['id']}", json={**payload, "examName": "OS Final", "status": "Scheduled"})
    assert edited.json()["examName"] == "OS Final"
    assert edited.json()["status"] == "Scheduled"

    done = client.put(f"/api/exams/{exam['id']}/status", json={"status": "Completed"})
    assert done.json()["status"] == "Completed"
    reopened = client.put(f"/api/exams/{exam['id']}/status", json={"status": "Pending"})
    assert reopened.status_code == 409
    assert client.put(f"/api/exams/{exam['id']}/status", json={"status": "Lost"}).status_code == 422

    assert client.delete(f"/api/exams/{exam['id']}").status_code == 204
    assert client.get(f"/api/exams/{exam['id']}").status_code == 404
    # Fixed paths under /exams still resolve
    assert client.get("/api/exams/stats").status_code == 200
    assert [s["code"] for s in client.get("/api/exams/subjects").json()] == ["CS305"]
    assert len(client.get("/api/exams/subjects/program/1").json()) == 1
