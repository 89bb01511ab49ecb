from racenav.config.settings import get_settings
from racenav.core.geo import GeoPoint
from racenav.host.signalk import NavigationReading, RacingCalculator, run_ticks


class Recorder:
    def __init__(self):
        self.messages = []

    def __call__(self, context, delta):
        self.messages.append((context, delta))

    def last_values(self) -> dict:
        context, delta = self.messages[-1]
        assert context == "navigation.racing"
        return {v["path"]: v["value"] for v in delta["updates"][0]["values"]}


class FakeClock:
    def __init__(self, ms: float = 0):
        self.ms = ms

    def __call__(self) -> float:
        return self.ms


def _calculator(metric: str = "haversine"):
    settings = get_settings()
    race = settings.race.model_copy(update={"distance_metric": metric})
    settings = settings.model_copy(update={"race": race})
    publish = Recorder()
    clock = FakeClock(1_000)
    return RacingCalculator(settings, publish, clock=clock), publish, clock


def test_registers_all_racing_put_paths():
    calc, _, _ = _calculator()
    assert set(calc.put_paths) == {
        "racing.startCountdown",
        "racing.cancelRace",
        "racing.pingBoat",
        "racing.pingPin",
        "racing.selectRaceCourse",
        "racing.nextWaypoint",
    }
    assert set(calc.courses) == {"W2", "Triangle"}


def test_select_course_publishes_first_mark():
    calc, publish, _ = _calculator()

    result = calc.handle_put("racing.selectRaceCourse", "W2")

    assert (result.state, result.status_code) == ("SUCCESS", 200)
    assert publish.last_values() == {"navigation.racing.markName": "Windward"}


def test_unknown_course_and_unknown_path_are_rejected():
    calc, publish, _ = _calculator()

    assert calc.handle_put("racing.selectRaceCourse", "Nope").status_code == 400
    result = calc.handle_put("racing.launchFireworks", 1)

    assert (result.state, result.status_code) == ("COMPLETED", 400)
    assert publish.messages == []


def test_start_countdown_publishes_status_and_mark():
    calc, publish, _ = _calculator()
    calc.handle_put("racing.selectRaceCourse", "Triangle")

    result = calc.handle_put("racing.startCountdown", "60")

    assert result.ok
    assert calc.machine.state.start_timestamp == 61_000
    assert publish.last_values() == {
        "navigation.racing.raceStatus": "pre-start",
        "navigation.racing.markName": "Windward",
    }


def test_start_countdown_rejects_garbage():
    calc, _, _ = _calculator()
    assert calc.handle_put("racing.startCountdown", "soon").status_code == 400
    assert calc.handle_put("racing.startCountdown", None).status_code == 400
    assert calc.machine.state.start_timestamp is None


def test_cancel_race_publishes_default_countdown():
    calc, publish, _ = _calculator()
    calc.handle_put("racing.startCountdown", 60)

    assert calc.handle_put("racing.cancelRace").ok
    assert publish.last_values() == {
        "navigation.racing.timeToStart": 300,
        "navigation.racing.raceStatus": "setup",
    }


def test_pings_need_a_position():
    calc, _, _ = _calculator()
    assert calc.handle_put("racing.pingBoat").status_code == 400
    assert calc.handle_put("racing.pingPin", position=None).status_code == 400

    boat = GeoPoint(lon=-1.2960, lat=50.7650)
    assert calc.handle_put("racing.pingBoat", position=boat).ok
    assert calc.machine.state.startline.boat_end == boat


def test_next_waypoint_requires_a_course_and_stops_at_the_last_leg():
    calc, publish, _ = _calculator()
    assert calc.handle_put("racing.nextWaypoint").status_code == 400

    calc.handle_put("racing.selectRaceCourse", "Triangle")
    assert calc.handle_put("racing.nextWaypoint").ok
    assert publish.last_values() == {"navigation.racing.markName": "Wing"}
    assert calc.handle_put("racing.nextWaypoint").ok
    assert calc.handle_put("racing.nextWaypoint").status_code == 400


def test_course_cannot_change_after_the_gun():
    calc, _, clock = _calculator()
    calc.handle_put("racing.selectRaceCourse", "W2")
    calc.handle_put("racing.startCountdown", 5)
    clock.ms = 10_000
    calc.tick()

    assert calc.handle_put("racing.selectRaceCourse", "Triangle").status_code == 400
    assert calc.machine.state.course.name == "W2"


def test_tick_publishes_gun_and_navigation_values():
    calc, publish, clock = _calculator()
    calc.handle_put("racing.selectRaceCourse", "W2")
    calc.handle_put("racing.pingBoat", position=GeoPoint(lon=-1.2960, lat=50.7650))
    calc.handle_put("racing.pingPin", position=GeoPoint(lon=-1.2940, lat=50.7650))
    calc.handle_put("racing.startCountdown", 2)

    clock.ms = 4_000
    delta = calc.tick(position=GeoPoint(lon=-1.2950, lat=50.7655), cog=0.0, sog=3.0)

    values = publish.last_values()
    assert delta == publish.messages[-1][1]
    assert values["navigation.racing.raceStatus"] == "racing"
    assert values["navigation.racing.timeToStart"] == -1.0
    for name in [
        "distanceBoatEnd",
        "distancePinEnd",
        "distanceStartline",
        "distanceToMark",
        "cogToMark",
        "bearingToMark",
        "vmgToMark",
        "vmg",
    ]:
        assert f"navigation.racing.{name}" in values
    assert "navigation.racing.markName" not in values


def test_tick_without_inputs_publishes_empty_delta():
    calc, publish, _ = _calculator()
    assert calc.tick() == {"updates": [{"values": []}]}
    assert len(publish.messages) == 1


def test_convergence_failure_is_logged_not_published(caplog):
    calc, publish, _ = _calculator(metric="wsg84")
    calc.handle_put("racing.pingBoat", position=GeoPoint(lon=180, lat=0))

    delta = calc.tick(position=GeoPoint(lon=0, lat=0))

    assert delta == {"updates": [{"values": []}]}
    assert any("failed to converge" in r.getMessage() for r in caplog.records)


def test_run_ticks_polls_navigation_until_stopped():
    calc, publish, clock = _calculator()
    calc.handle_put("racing.startCountdown", 1)
    sleeps = []

    def fake_sleep(seconds):
        sleeps.append(seconds)
        clock.ms += seconds * 1000

    ticks = run_ticks(
        calc,
        lambda: NavigationReading(position=GeoPoint(lon=-1.2950, lat=50.7655), cog=0.0, sog=2.0),
        should_stop=lambda: len(sleeps) >= 4,
        sleep=fake_sleep,
    )

    assert ticks == 4
    assert sleeps == [0.5] * 4
    statuses = [
        v["value"]
        for _, delta in publish.messages
        for v in delta["updates"][0]["values"]
        if v["path"] == "navigation.racing.raceStatus"
    ]
    assert statuses == ["pre-start", "racing"]
