from conftest import PASSWORD


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_register_and_login_student(client, login):
    r = client.post("/auth/register", json={
        "name": "Camila Rojas", "age": 27, "email": "Camila.Rojas@Gmail.com", "password": PASSWORD,
    })
    assert r.status_code == 201
    body = r.json()
    assert body["email"] == "camila.rojas@gmail.com"
    assert body["is_tutor"] is False
    assert body["is_disabled"] is False
    assert body["image_url"].endswith("text=C")
    assert "password_hash" not in body

    headers = login("CAMILA.rojas@gmail.com")
    me = client.get("/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["id"] == body["id"]


def test_duplicate_email_is_rejected(client, create_student):
    create_student()
    r = client.post("/auth/register", json={
        "name": "Otra Camila", "age": 30, "email": "camila.rojas@gmail.com", "password": PASSWORD,
    })
    assert r.status_code == 400
    assert "ya se encuentra registrado" in r.json()["detail"]


def test_register_validation(client):
    r = client.post("/auth/register", json={
        "name": "Camila", "age": 27, "email": "camila@gmail.com", "password": "123",
    })
    assert r.status_code == 422


def test_blank_name_is_rejected(client):
    r = client.post("/auth/register", json={
        "name": "   ", "age": 27, "email": "sin.nombre@gmail.com", "password": PASSWORD,
    })
    assert r.status_code == 400
    assert r.json()["detail"] == "El nombre no puede estar vacío."


def test_wrong_password(client, create_student):
    create_student()
    r = client.post("/auth/login", data={"username": "camila.rojas@gmail.com", "password": "otra-clave"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Correo electrónico o contraseña incorrectos."


def test_invalid_token(client):
    r = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_psychologist_registration_starts_pending(client, login):
    r = client.post("/auth/register/psychologist", json={
        "name": "Dr. Pablo Soto",
        "email": "pablo.soto@mail.udp.cl",
        "password": PASSWORD,
        "specialties": ["Neuropsicología", "Psicología Clínica"],
        "hourly_rate": 35000,
        "professional_link": "https://www.linkedin.com/in/pablo-soto",
    })
    assert r.status_code == 201
    body = r.json()
    assert body["is_tutor"] is True
    assert body["is_disabled"] is True
    assert body["validation_status"] == "pending"
    assert body["rating"] == 5.0
    assert body["reviews"] == 0
    assert body["courses"] == ["Neuropsicología", "Psicología Clínica"]
    assert body["specialty_rates"] == [
        {"name": "Neuropsicología", "price": 35000},
        {"name": "Psicología Clínica", "price": 35000},
    ]

    # pending psychologists can log in to finish onboarding but nothing else
    headers = login("pablo.soto@mail.udp.cl")
    assert client.get("/auth/me", headers=headers).status_code == 200
    r = client.get("/user/profile", headers=headers)
    assert r.status_code == 403
    assert "pendiente de aprobación" in r.json()["detail"]


def test_psychologist_unknown_specialty(client):
    r = client.post("/auth/register/psychologist", json={
        "name": "Dr. Pablo Soto",
        "email": "pablo.soto@mail.udp.cl",
        "password": PASSWORD,
        "specialties": ["Astrología"],
        "hourly_rate": 35000,
        "professional_link": "https://www.linkedin.com/in/pablo-soto",
    })
    assert r.status_code == 400
    assert "Astrología" in r.json()["detail"]


def test_rejected_psychologist_cannot_log_in(client, create_psychologist, admin_headers):
    user, _ = create_psychologist(approve=False)
    r = client.put(f"/admin/users/{user['id']}/validation", json={"status": "rejected"}, headers=admin_headers)
    assert r.status_code == 200

    r = client.post("/auth/login", data={"username": user["email"], "password": PASSWORD})
    assert r.status_code == 403
    assert "rechazado" in r.json()["detail"]


def test_rejection_after_approval_locks_the_account(client, create_psychologist, admin_headers):
    user, headers = create_psychologist()
    assert client.get("/user/profile", headers=headers).status_code == 200

    r = client.put(f"/admin/users/{user['id']}/validation", json={"status": "rejected"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["validation_status"] == "rejected"
    assert r.json()["is_disabled"] is True

    r = client.post("/auth/login", data={"username": user["email"], "password": PASSWORD})
    assert r.status_code == 403
    assert "rechazado" in r.json()["detail"]
    assert client.get("/user/profile", headers=headers).status_code == 403
    assert client.get("/auth/me", headers=headers).status_code == 403
    assert client.get("/psychologists").json() == []

    # lifting a suspension does not undo the rejection
    r = client.put(f"/admin/users/{user['id']}/status", json={"is_disabled": False}, headers=admin_headers)
    assert r.status_code == 200
    r = client.post("/auth/login", data={"username": user["email"], "password": PASSWORD})
    assert r.status_code == 403
    assert client.get("/user/profile", headers=headers).status_code == 403


def test_suspended_user_is_locked_out(client, create_student, admin_headers):
    student, headers = create_student()
    r = client.put(f"/admin/users/{student['id']}/status", json={"is_disabled": True}, headers=admin_headers)
    assert r.status_code == 200

    # existing tokens stop working too
    assert client.get("/user/profile", headers=headers).status_code == 403
    r = client.post("/auth/login", data={"username": student["email"], "password": PASSWORD})
    assert r.status_code == 403
    assert r.json()["detail"] == "Tu cuenta ha sido suspendida."
