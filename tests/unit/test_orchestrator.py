"""Unit tests for the view orchestrator: loads, navigation, cinema, picking."""

from __future__ import annotations

import asyncio

import pytest

from storymap.mapview.orchestrator import PICKER_MARKER_KEY, ViewOrchestrator
from storymap.mapview.playback import PlaybackState
from storymap.models.map import CameraState, MapClick, ViewMode
from storymap.utils.geometry import coord_key
from tests.conftest import (
    HAIFA,
    KRAKOW,
    VIENNA,
    FakeAudioPlayer,
    FakeClock,
    FakeGeocoder,
    FakeMapWidget,
    FakeScheduler,
    InMemoryStoryReader,
    make_event,
)


@pytest.fixture
def reader(story_events) -> InMemoryStoryReader:
    return InMemoryStoryReader(
        {
            "story-1": story_events,
            "story-2": [make_event("E001", *HAIFA)],
        }
    )


@pytest.fixture
def orchestrator(
    reader: InMemoryStoryReader,
    widget: FakeMapWidget,
    audio_player: FakeAudioPlayer,
    geocoder: FakeGeocoder,
    scheduler: FakeScheduler,
    clock: FakeClock,
) -> ViewOrchestrator:
    return ViewOrchestrator(reader, widget, audio_player, geocoder, scheduler, clock=clock)


class TestOpen:
    @pytest.mark.asyncio
    async def test_open_loads_events_and_focuses_first(self, orchestrator, widget) -> None:
        assert await orchestrator.open(ViewMode.EDIT, "story-1") is True
        assert orchestrator.mode is ViewMode.EDIT
        assert len(orchestrator.events) == 5
        assert orchestrator.active_event_index == 0
        assert not orchestrator.loading
        assert coord_key(*KRAKOW) in widget.markers

    @pytest.mark.asyncio
    async def test_first_located_event_moves_camera(self, orchestrator, widget) -> None:
        await orchestrator.open("view", "story-2")
        assert orchestrator.desired_camera == CameraState(center=HAIFA, zoom=10)
        assert widget.calls_named("ease_to")

    @pytest.mark.asyncio
    async def test_load_failure_leaves_empty_state(self, orchestrator, reader) -> None:
        reader.failing.add("story-1")
        assert await orchestrator.open(ViewMode.EDIT, "story-1") is False
        assert orchestrator.events == []
        assert orchestrator.active_event_index is None
        assert orchestrator.load_error == "Request failed with status 500"
        assert not orchestrator.loading

    @pytest.mark.asyncio
    async def test_unknown_story_reports_not_found(self, orchestrator) -> None:
        assert await orchestrator.open(ViewMode.VIEW, "nope") is False
        assert orchestrator.load_error == "Story not found"

    @pytest.mark.asyncio
    async def test_stale_load_is_dropped(self, orchestrator, reader) -> None:
        gate = asyncio.Event()
        reader.gates["story-1"] = gate
        slow = asyncio.create_task(orchestrator.open(ViewMode.EDIT, "story-1"))
        await asyncio.sleep(0)

        assert await orchestrator.open(ViewMode.EDIT, "story-2") is True
        gate.set()
        assert await slow is False

        assert orchestrator.story_id == "story-2"
        assert [e["eventId"] for e in orchestrator.events] == ["E001"]

    @pytest.mark.asyncio
    async def test_story_switch_resets_picking(self, orchestrator) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        orchestrator.begin_pick(1)
        await orchestrator.open(ViewMode.EDIT, "story-2")
        assert not orchestrator.is_picking_location
        assert orchestrator.marker_location is None


class TestHomeOverview:
    @pytest.mark.asyncio
    async def test_overview_merges_all_stories(self, orchestrator, widget) -> None:
        await orchestrator.open(ViewMode.HOME)
        overlay = await orchestrator.load_home_overview()
        assert len(overlay.markers) == 4
        assert f"story-2:{coord_key(*HAIFA)}" in widget.markers

    @pytest.mark.asyncio
    async def test_overview_failure_degrades_to_empty(self, orchestrator, reader) -> None:
        reader.list_fails = True
        await orchestrator.open(ViewMode.HOME)
        overlay = await orchestrator.load_home_overview()
        assert overlay.markers == ()

    @pytest.mark.asyncio
    async def test_overview_arriving_after_leaving_home_is_dropped(self, orchestrator, reader, widget) -> None:
        await orchestrator.open(ViewMode.HOME)
        gate = asyncio.Event()
        reader.gates["story-2"] = gate
        pending = asyncio.create_task(orchestrator.load_home_overview())
        await asyncio.sleep(0)
        await orchestrator.open(ViewMode.EDIT, "story-1")
        gate.set()
        await pending
        assert f"story-2:{coord_key(*HAIFA)}" not in widget.markers


class TestNavigation:
    @pytest.mark.asyncio
    async def test_forward_eases_and_backward_jumps(self, orchestrator, widget) -> None:
        await orchestrator.open(ViewMode.VIEW, "story-1")
        orchestrator.go_to(1)
        orchestrator.go_to(2)
        camera, _ = widget.calls_named("ease_to")[-1]
        assert camera.center == VIENNA

        orchestrator.go_to(1)
        assert widget.calls_named("jump_to")[-1].center == KRAKOW
        assert orchestrator.active_event_index == 1

    @pytest.mark.asyncio
    async def test_index_is_clamped(self, orchestrator) -> None:
        await orchestrator.open(ViewMode.VIEW, "story-1")
        orchestrator.go_to(1)
        assert orchestrator.go_to(99) == 4
        assert orchestrator.previous() == 3
        assert orchestrator.go_to(-3) == 0

    @pytest.mark.asyncio
    async def test_leaving_opening_pans_then_zooms(self, orchestrator, widget, scheduler, reader) -> None:
        reader.stories["story-1"][1]["location"]["mapView"]["zoom"] = 12
        await orchestrator.open(ViewMode.VIEW, "story-1")
        live_zoom = widget.get_camera().zoom

        assert orchestrator.next() == 1
        pan, pan_ms = widget.calls_named("ease_to")[-1]
        assert pan.center == KRAKOW
        assert pan.zoom == live_zoom
        assert orchestrator.zoom_pending

        scheduler.advance(pan_ms / 1000 + 0.01)
        final, _ = widget.calls_named("ease_to")[-1]
        assert final.center == KRAKOW and final.zoom == 12

    @pytest.mark.asyncio
    async def test_navigation_cancels_pending_zoom(self, orchestrator, widget, scheduler) -> None:
        await orchestrator.open(ViewMode.VIEW, "story-1")
        orchestrator.next()
        orchestrator.next()
        assert not orchestrator.zoom_pending
        scheduler.advance(20)
        assert widget.calls_named("ease_to")[-1][0].center == VIENNA

    @pytest.mark.asyncio
    async def test_zoom_controls(self, orchestrator, widget, scheduler) -> None:
        await orchestrator.open(ViewMode.VIEW, "story-1")
        orchestrator.zoom_out()
        assert widget.calls_named("fit_bounds")

        orchestrator.go_to(1)
        scheduler.advance(1)
        orchestrator.zoom_in()
        camera, duration = widget.calls_named("ease_to")[-1]
        assert camera.center == KRAKOW and camera.zoom == 10 and duration == 600

    @pytest.mark.asyncio
    async def test_user_move_updates_desired_camera(self, orchestrator, widget, scheduler) -> None:
        await orchestrator.open(ViewMode.VIEW, "story-1")
        scheduler.advance(5)
        widget.camera = CameraState(center=(1.0, 1.0), zoom=4.0)
        orchestrator.handle_map_move_end()
        assert orchestrator.desired_camera == CameraState(center=(1.0, 1.0), zoom=4.0)


class TestCinema:
    @pytest.mark.asyncio
    async def test_auto_advances_through_story_then_exits_to_view(self, orchestrator, scheduler, widget) -> None:
        await orchestrator.open(ViewMode.CINEMA, "story-1")
        assert orchestrator.active_event_index == 0
        assert orchestrator.playback.state is PlaybackState.SHOWING_EVENT

        scheduler.advance(2.0)
        assert orchestrator.active_event_index == 1
        scheduler.advance(2.0)
        assert orchestrator.active_event_index == 2
        assert widget.calls_named("jump_to")

        scheduler.advance(6.0)
        assert orchestrator.mode is ViewMode.VIEW
        assert orchestrator.playback.state is PlaybackState.EXITED

    @pytest.mark.asyncio
    async def test_audio_events_wait_for_playback(self, orchestrator, reader, audio_player, scheduler) -> None:
        reader.stories["story-1"][1]["content"]["audioUrl"] = "/stories/audio/story-1/E001.mp3"
        await orchestrator.open(ViewMode.CINEMA, "story-1")
        scheduler.advance(2.0)
        assert orchestrator.active_event_index == 1
        assert audio_player.playing

        scheduler.advance(10.0)
        assert orchestrator.active_event_index == 1
        orchestrator.playback.on_audio_ended()
        assert orchestrator.active_event_index == 2

    @pytest.mark.asyncio
    async def test_manual_exit(self, orchestrator, scheduler, audio_player) -> None:
        await orchestrator.open(ViewMode.CINEMA, "story-1")
        orchestrator.exit_cinema()
        scheduler.advance(10.0)
        assert orchestrator.mode is ViewMode.VIEW
        assert orchestrator.active_event_index == 0
        assert not audio_player.playing


class TestEditing:
    @pytest.mark.asyncio
    async def test_edits_keep_chain_and_rerender(self, orchestrator, widget) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        events = orchestrator.insert_after(1)
        assert events[2]["eventId"] == "E004"
        assert events[3]["transition"]["sourceEventId"] == "E004"

        events = orchestrator.delete_at(3)
        assert [e["eventId"] for e in events] == ["OPENING", "E001", "E004", "E003", "CLOSING"]
        assert coord_key(*VIENNA) not in widget.markers

    @pytest.mark.asyncio
    async def test_reorder_follows_active_event(self, orchestrator) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        orchestrator.go_to(1)
        orchestrator.reorder(1, 3)
        assert orchestrator.active_event_index == 3
        assert orchestrator.events[3]["eventId"] == "E001"

    @pytest.mark.asyncio
    async def test_reorder_keeps_focus_on_card_in_between(self, orchestrator) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        orchestrator.go_to(1)
        orchestrator.go_to(2)
        events = orchestrator.reorder(1, 3)
        assert [e["eventId"] for e in events] == ["OPENING", "E002", "E003", "E001", "CLOSING"]
        assert events[orchestrator.active_event_index]["eventId"] == "E002"

    @pytest.mark.asyncio
    async def test_out_of_range_delete_keeps_focus(self, orchestrator) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        orchestrator.go_to(1)
        orchestrator.go_to(2)
        events = orchestrator.delete_at(-1)
        assert len(events) == 5
        assert orchestrator.active_event_index == 2
        assert events[2]["eventId"] == "E002"

    @pytest.mark.asyncio
    async def test_delete_before_active_follows_card(self, orchestrator) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        orchestrator.go_to(1)
        orchestrator.go_to(2)
        events = orchestrator.delete_at(1)
        assert events[orchestrator.active_event_index]["eventId"] == "E002"

    @pytest.mark.asyncio
    async def test_deleting_active_card_keeps_position(self, orchestrator) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        orchestrator.go_to(1)
        orchestrator.go_to(2)
        events = orchestrator.delete_at(2)
        assert orchestrator.active_event_index == 2
        assert events[2]["eventId"] == "E003"

    @pytest.mark.asyncio
    async def test_update_field(self, orchestrator) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        events = orchestrator.update_field(1, "timeline.dateStart", "1931")
        assert events[1]["timeline"]["dateEnd"] == "1931"

    @pytest.mark.asyncio
    async def test_add_event_appends_after_last(self, orchestrator) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        events = orchestrator.add_event()
        assert len(events) == 6
        assert events[-1]["eventId"] == "E004"
        assert events[-1]["transition"]["sourceEventId"] == "CLOSING"


class TestPicking:
    @pytest.mark.asyncio
    async def test_pick_only_in_edit_mode(self, orchestrator) -> None:
        await orchestrator.open(ViewMode.VIEW, "story-1")
        assert orchestrator.begin_pick(1) is False

    @pytest.mark.asyncio
    async def test_click_commits_location_and_name(self, orchestrator, geocoder, clock, widget) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        geocoder.reverse_names[(2.35, 48.85)] = "Paris, France"
        assert orchestrator.begin_pick(1) is True

        commit = await orchestrator.handle_map_click(MapClick(lng=2.35, lat=48.85, timestamp=clock.now))
        assert commit is not None
        event = orchestrator.events[1]
        assert event["location"]["coordinates"] == {"lng": 2.35, "lat": 48.85}
        assert event["location"]["name"] == "Paris, France"
        assert not orchestrator.is_picking_location
        assert PICKER_MARKER_KEY in widget.markers

    @pytest.mark.asyncio
    async def test_stale_click_ignored(self, orchestrator, clock) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        orchestrator.begin_pick(1)
        assert await orchestrator.handle_map_click(MapClick(lng=1, lat=1, timestamp=clock.now - 1)) is None
        assert orchestrator.is_picking_location
        assert orchestrator.events[1]["location"]["coordinates"]["lng"] == KRAKOW[0]

    @pytest.mark.asyncio
    async def test_late_name_follows_event_id(self, orchestrator, geocoder, clock) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        geocoder.reverse_gate = asyncio.Event()
        geocoder.reverse_names[(2.35, 48.85)] = "Paris, France"
        orchestrator.begin_pick(1)

        pending = asyncio.create_task(
            orchestrator.handle_map_click(MapClick(lng=2.35, lat=48.85, timestamp=clock.now))
        )
        await asyncio.sleep(0)
        orchestrator.reorder(1, 3)
        geocoder.reverse_gate.set()
        await pending

        moved = orchestrator.events[3]
        assert moved["eventId"] == "E001"
        assert moved["location"]["name"] == "Paris, France"

    @pytest.mark.asyncio
    async def test_search_location(self, orchestrator, widget) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        commit = await orchestrator.search_location(2, "Haifa")
        assert commit is not None
        assert orchestrator.events[2]["location"]["name"] == "Haifa, Israel"
        assert orchestrator.desired_camera == CameraState(center=HAIFA, zoom=12)

    @pytest.mark.asyncio
    async def test_search_failure_notice(self, orchestrator) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        assert await orchestrator.search_location(2, "Atlantis") is None
        assert orchestrator.notices == ["No matching place found on the map."]

    @pytest.mark.asyncio
    async def test_dispose_clears_widget(self, orchestrator, widget) -> None:
        await orchestrator.open(ViewMode.EDIT, "story-1")
        orchestrator.dispose()
        assert widget.markers == {}
        assert orchestrator.events == []
