from coderun.engine.base import JobState


HELLO_C = '#include <stdio.h>\nint main(void) { puts("hi"); return 0; }\n'


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body == {"status": "ok", "engine": "available", "redis": "disconnected"}


def test_health_engine_unavailable(client, engine):
    engine.available = False
    res = client.get("/health")
    assert res.json()["engine"] == "unavailable"


def test_execute_success_passes_json_through(client, engine):
    engine.result = '{"stdout": "hi", "trace": [1, 2]}'
    res = client.post("/execute", json={"code": HELLO_C, "language": "c", "input": "1 2"})
    assert res.status_code == 200
    assert res.json() == {"stdout": "hi", "trace": [1, 2]}

    task = engine.submitted[0].tasks[0]
    assert engine.submitted[0].name == "code execution"
    assert task.filename == "usercode.c"
    assert task.files == {"usercode.c": HELLO_C}
    assert 'echo "1 2" > /tmp/user_code/programInput.txt' in task.run


def test_execute_compiler_error(client, engine):
    engine.result = (
        "usercode.cpp: In function 'int main()':\n"
        "usercode.cpp:5:10: error: 'x' was not declared in this scope\n"
    )
    res = client.post("/execute", json={"code": "int main(){}", "language": "c++", "input": ""})
    assert res.status_code == 400
    assert res.json() == {
        "code": "int main(){}",
        "error": {
            "event": "compiler",
            "exception_msg": "error: 'x' was not declared in this scope",
            "line": 5,
            "column": 10,
        },
    }


def test_execute_unknown_output(client, engine):
    engine.result = "Segmentation fault (core dumped)"
    res = client.post("/execute", json={"code": "x", "language": "c", "input": ""})
    assert res.status_code == 400
    assert res.json() == {"message": "unknown_error"}


def test_execute_non_standard_json_constant_is_unknown_error(client, engine):
    engine.result = '{"stdout": "", "trace": [{"x": NaN}]}'
    res = client.post("/execute", json={"code": "x", "language": "c", "input": ""})
    assert res.status_code == 400
    assert res.json() == {"message": "unknown_error"}


def test_execute_failed_job_reports_error_text(client, engine):
    engine.state = JobState.FAILED
    engine.result = '{"stdout": "ignored"}'
    engine.error = "task timed out after 20s"
    res = client.post("/execute", json={"code": "x", "language": "c", "input": ""})
    assert res.status_code == 400
    assert res.json() == {"message": "unknown_error"}


def test_execute_invalid_input_short_circuits(client, engine):
    res = client.post("/execute", json={"code": "x", "language": "c", "input": "echo $PATH"})
    assert res.status_code == 400
    assert res.json() == {"message": "invalid_input"}
    assert engine.submitted == []


def test_execute_input_is_trimmed_before_validation(client, engine):
    res = client.post("/execute", json={"code": "x", "language": "c", "input": "  42 \n"})
    assert res.status_code == 200
    assert 'echo "42" >' in engine.submitted[0].tasks[0].run


def test_execute_missing_language(client, engine):
    res = client.post("/execute", json={"code": "x", "language": "  ", "input": ""})
    assert res.status_code == 400
    assert res.json() == {"message": "missing language"}
    assert engine.submitted == []


def test_execute_unknown_language(client):
    res = client.post("/execute", json={"code": "x", "language": "java", "input": ""})
    assert res.status_code == 400
    assert res.json() == {"message": "unknown language: java"}


def test_execute_malformed_body(client, engine):
    res = client.post(
        "/execute",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert res.status_code == 400
    assert res.json()["message"].startswith("error binding request")
    assert engine.submitted == []


def test_execute_wrong_field_type(client):
    res = client.post("/execute", json={"code": 12, "language": "c", "input": ""})
    assert res.status_code == 400
    assert res.json()["message"].startswith("error binding request")


def test_execute_engine_rejects_job(client, engine):
    engine.reject = "queue full"
    res = client.post("/execute", json={"code": "x", "language": "c", "input": ""})
    assert res.status_code == 400
    assert res.json() == {"message": "error executing code: queue full"}


def test_execute_times_out(client, engine, settings):
    engine.hang = True
    settings.execution.result_timeout_sec = 0.1
    res = client.post("/execute", json={"code": "x", "language": "c", "input": ""})
    assert res.status_code == 504
    assert res.json() == {"message": "timeout"}


def test_execute_debug_trace_returns_raw_output(client, engine, settings):
    settings.execution.debug_trace = True
    engine.result = "==1== valgrind trace"
    res = client.post("/execute", json={"code": "x", "language": "c", "input": ""})
    assert res.status_code == 200
    assert res.json() == "==1== valgrind trace"
    assert "cat /tmp/user_code/usercode.vgtrace > $TORK_OUTPUT" in engine.submitted[0].tasks[0].run


def test_execute_publishes_job_events(client, monkeypatch):
    import time
    from unittest.mock import AsyncMock, MagicMock

    from coderun import state

    bus = MagicMock()
    bus.publish = AsyncMock()
    monkeypatch.setattr(state, "event_bus", bus)

    res = client.post("/execute", json={"code": "x", "language": "c++", "input": ""})
    assert res.status_code == 200

    # job_finished is scheduled from the engine listener and may land after the response.
    deadline = time.monotonic() + 2.0
    while len(bus.publish.await_args_list) < 2 and time.monotonic() < deadline:
        time.sleep(0.01)

    events = {call.args[0]["type"]: call.args[0] for call in bus.publish.await_args_list}
    assert events["job_submitted"]["job_id"] == "job-1"
    assert events["job_submitted"]["language"] == "c++"
    assert events["job_finished"]["job_id"] == "job-1"
    assert events["job_finished"]["state"] == "completed"
