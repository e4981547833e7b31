# tests/test_pipeline.py
"""Test the per-track pipeline and the playlist walker"""

import logging
from unittest.mock import Mock

import pytest
from mutagen.id3 import ID3

from spot_ripper.catalog.models import CatalogIdentifier, IdentifierKind
from spot_ripper.core.exceptions import (
    CatalogError,
    FormatUnavailableError,
    HelperError,
    MetadataError,
)
from spot_ripper.core.file_manager import OutputPlacer
from spot_ripper.download.metadata import MetadataSynthesizer
from spot_ripper.download.outcome import BatchStats, TrackOutcome, TrackStatus
from spot_ripper.download.pipeline import TrackPipeline

TRACK_A = "4cOdK2wGLETKBW3PvgPWqT"
TRACK_B = "3n3Ppam7vgaVa1iaRUc9Lp"
TRACK_C = "0VjIjW4GlUZAMYd2vXMi3b"
TRACK_D = "1301WleyT98MSxVHPZCA6M"
PLAYLIST = "37i9dQZF1DXcBWIGoYBM5M"


def track_id(token):
    return CatalogIdentifier(IdentifierKind.TRACK, token)


@pytest.fixture
def make_pipeline(session, output_dir, transfer, fake_transcoder):
    """Build pipelines that share the catalog and output directory"""
    def make(**kwargs):
        kwargs.setdefault("synthesizer", MetadataSynthesizer(None))
        synthesizer = kwargs.pop("synthesizer")
        return TrackPipeline(session, OutputPlacer(output_dir), transfer, synthesizer, **kwargs)
    return make


class TestSingleTrack:
    """Test one track through every placement decision"""

    def test_download(self, session, output_dir, make_pipeline, fake_transcoder):
        """Test a new track is fetched, converted and tagged"""
        session.add_track(TRACK_A, "Bohemian Rhapsody")

        outcome = make_pipeline().process_track(track_id(TRACK_A))

        final = output_dir / "Queen - Bohemian Rhapsody.mp3"
        assert outcome.status is TrackStatus.DOWNLOADED
        assert outcome.path == final
        assert outcome.tags_written is True
        assert final.exists()
        assert not (output_dir / "Queen - Bohemian Rhapsody.ogg").exists()
        assert len(fake_transcoder.calls) == 1
        assert len(session.stream_opens) == 1

        tags = ID3(final)
        assert tags["TIT2"].text == ["Bohemian Rhapsody"]
        assert tags["TALB"].text == ["A Night at the Opera"]
        assert tags["TPE1"].text == ["Queen"]
        assert tags.getall("TCON") == []

    def test_header_stripped_before_transcode(self, session, output_dir, make_pipeline):
        """Test the converted payload starts after the container header"""
        session.add_track(TRACK_A, "Song")
        make_pipeline().process_track(track_id(TRACK_A))
        # FakeTranscoder copies the .ogg verbatim; ID3 goes in front of it
        data = (output_dir / "Queen - Song.mp3").read_bytes()
        assert data.endswith(b"OGG_VORBIS_320:Song")
        assert b"HHHH" not in data

    def test_second_run_skips(self, session, output_dir, make_pipeline, fake_transcoder):
        """Test idempotence: a finished track is never fetched again"""
        session.add_track(TRACK_A, "Bohemian Rhapsody")

        make_pipeline().process_track(track_id(TRACK_A))
        outcome = make_pipeline().process_track(track_id(TRACK_A))

        assert outcome.status is TrackStatus.SKIPPED
        assert len(session.stream_opens) == 1
        assert len(fake_transcoder.calls) == 1
        # Album only fetched for the first run
        assert len(session.album_requests) == 1

    def test_force_tags_retags_without_transfer(self, session, output_dir, make_pipeline, fake_transcoder):
        """Test --force-tags rewrites tags of an existing file"""
        session.add_track(TRACK_A, "Bohemian Rhapsody")
        final = output_dir / "Queen - Bohemian Rhapsody.mp3"
        final.write_bytes(b"\xff\xfb\x90\x00" + b"\x00" * 100)

        outcome = make_pipeline(force_tags=True).process_track(track_id(TRACK_A))

        assert outcome.status is TrackStatus.RETAGGED
        assert session.stream_opens == []
        assert fake_transcoder.calls == []
        assert ID3(final)["TIT2"].text == ["Bohemian Rhapsody"]

    def test_id3_version_passed_to_ffmpeg(self, session, make_pipeline, fake_transcoder):
        """Test ffmpeg and the tag writer use the same ID3 version"""
        session.add_track(TRACK_A, "Song")

        make_pipeline(synthesizer=MetadataSynthesizer(None, id3_version=3)).process_track(track_id(TRACK_A))

        assert fake_transcoder.options[0]["id3_version"] == 3

    def test_degraded_format(self, session, output_dir, make_pipeline):
        """Test the 160 kbps fallback is downloaded and noted"""
        session.add_track(TRACK_A, "Song", formats=("OGG_VORBIS_160", "MP3_96"))

        outcome = make_pipeline().process_track(track_id(TRACK_A))

        assert outcome.status is TrackStatus.DOWNLOADED
        assert session.stream_opens[0].endswith("OGG_VORBIS_160".encode().hex())
        comments = {f.desc: f.text[0] for f in ID3(outcome.path).getall("COMM")}
        assert comments["Bitrate"] == "Downloaded at 160 kbps (320 kbps unavailable)"

    def test_alternative_substitution(self, session, output_dir, make_pipeline):
        """Test a restricted track is replaced by its alternative"""
        session.add_track(TRACK_A, "Song", restrictions=("forbidden in IT",), alternatives=(TRACK_B,))
        session.add_track(TRACK_B, "Song (Remastered)")

        outcome = make_pipeline().process_track(track_id(TRACK_A))

        assert outcome.identifier == track_id(TRACK_A)
        assert outcome.path == output_dir / "Queen - Song (Remastered).mp3"
        assert session.stream_opens[0].startswith(TRACK_B.encode().hex())

    def test_error_carries_track_name(self, session, make_pipeline):
        """Test failures after resolution know the track name"""
        session.add_track(TRACK_A, "Song", formats=("MP3_96",))
        with pytest.raises(FormatUnavailableError) as exc_info:
            make_pipeline().process_track(track_id(TRACK_A))
        assert exc_info.value.details["track_name"] == "Song"

    def test_tag_failure_is_degraded(self, session, make_pipeline):
        """Test a tag write error does not fail the track"""
        session.add_track(TRACK_A, "Song")
        synthesizer = Mock()
        synthesizer.synthesize.side_effect = MetadataError("disk full")

        outcome = make_pipeline(synthesizer=synthesizer).run_item(track_id(TRACK_A))

        assert outcome.status is TrackStatus.DOWNLOADED
        assert outcome.tags_written is False


class TestRunItem:
    """Test per-track error isolation"""

    def test_failure_becomes_outcome(self, session, make_pipeline, caplog):
        """Test per-track errors are logged with the track link"""
        session.add_track(TRACK_A, "Song", formats=("MP3_96",))

        with caplog.at_level(logging.ERROR):
            outcome = make_pipeline().run_item(track_id(TRACK_A))

        assert outcome.status is TrackStatus.FAILED
        assert outcome.failed
        failures = [r for r in caplog.records if hasattr(r, "failed_track_token")]
        assert len(failures) == 1
        assert failures[0].failed_track_token == TRACK_A
        assert failures[0].failed_track_name == "Song"

    def test_unknown_track(self, session, make_pipeline):
        """Test a track the catalog does not know"""
        outcome = make_pipeline().run_item(track_id(TRACK_A))
        assert outcome.status is TrackStatus.FAILED
        assert isinstance(outcome.error, CatalogError)

    def test_auth_error_propagates(self, session, make_pipeline, monkeypatch):
        """Test a lost session ends the run"""
        def get_track(identifier):
            raise CatalogError("session expired", is_auth_error=True)

        monkeypatch.setattr(session, "get_track", get_track)

        with pytest.raises(CatalogError):
            make_pipeline().run_item(track_id(TRACK_A))


class TestHelperMode:
    """Test piping tracks to the helper"""

    def test_piped_not_saved(self, session, output_dir, make_pipeline, fake_transcoder):
        """Test nothing is written to the output directory"""
        session.add_track(TRACK_A, "Song")
        hook = Mock()

        outcome = make_pipeline(hook=hook).process_track(track_id(TRACK_A))

        assert outcome.status is TrackStatus.PIPED
        assert list(output_dir.iterdir()) == []
        assert fake_transcoder.calls == []
        track, album, artists, decoded = hook.run.call_args.args
        assert track.identifier.token == TRACK_A
        assert album.name == "A Night at the Opera"
        assert artists == ["Queen"]
        assert decoded.endswith(b"OGG_VORBIS_320:Song")

    def test_helper_failure(self, session, make_pipeline):
        session.add_track(TRACK_A, "Song")
        hook = Mock()
        hook.run.side_effect = HelperError("exit 1")

        outcome = make_pipeline(hook=hook).run_item(track_id(TRACK_A))

        assert outcome.status is TrackStatus.FAILED


class TestCollections:
    """Test playlist walks"""

    def test_failing_member_does_not_stop_walk(self, session, output_dir, make_pipeline):
        """Test members 1 and 3 are ripped when member 2 fails"""
        session.add_track(TRACK_A, "One")
        session.add_track(TRACK_B, "Two", formats=("MP3_96",))
        session.add_track(TRACK_C, "Three")
        playlist = session.add_collection(PLAYLIST, "Road Trip", [TRACK_A, TRACK_B, TRACK_C])

        outcomes = make_pipeline().walk_collection(playlist)

        assert [o.status for o in outcomes] == [
            TrackStatus.DOWNLOADED,
            TrackStatus.FAILED,
            TrackStatus.DOWNLOADED,
        ]
        assert (output_dir / "Road Trip" / "Queen - One.mp3").exists()
        assert not (output_dir / "Road Trip" / "Queen - Two.mp3").exists()
        assert (output_dir / "Road Trip" / "Queen - Three.mp3").exists()

    def test_filesystem_error_does_not_stop_walk(self, session, output_dir, make_pipeline):
        """Test an overlong member title fails alone"""
        session.add_track(TRACK_A, "One")
        session.add_track(TRACK_B, "x" * 300)
        session.add_track(TRACK_C, "Three")
        playlist = session.add_collection(PLAYLIST, "Mix", [TRACK_A, TRACK_B, TRACK_C])

        stats = make_pipeline().run([playlist])

        assert stats.total == 3
        assert stats.downloaded == 2
        assert stats.failed == 1
        assert (output_dir / "Mix" / "Queen - One.mp3").exists()
        assert (output_dir / "Mix" / "Queen - Three.mp3").exists()

    def test_parent_directory_name_stays_under_root(self, session, output_dir, make_pipeline):
        """Test a playlist named '..' is written inside the output root"""
        session.add_track(TRACK_A, "One")
        playlist = session.add_collection(PLAYLIST, "..", [TRACK_A])

        outcomes = make_pipeline().walk_collection(playlist)

        assert outcomes[0].status is TrackStatus.DOWNLOADED
        assert outcomes[0].path == output_dir / "_" / "Queen - One.mp3"
        assert outcomes[0].path.resolve().is_relative_to(output_dir.resolve())
        assert not (output_dir.parent / "Queen - One.mp3").exists()

    def test_member_order(self, session, make_pipeline):
        """Test members are processed in listed order"""
        for token, name in ((TRACK_C, "C"), (TRACK_A, "A"), (TRACK_B, "B")):
            session.add_track(token, name)
        playlist = session.add_collection(PLAYLIST, "Mix", [TRACK_C, TRACK_A, TRACK_B])

        make_pipeline().walk_collection(playlist)

        assert session.track_requests == [TRACK_C, TRACK_A, TRACK_B]

    def test_playlist_tag(self, session, output_dir, make_pipeline):
        """Test the playlist name goes in the genre slot and comment"""
        session.add_track(TRACK_A, "One")
        playlist = session.add_collection(PLAYLIST, "Road Trip", [TRACK_A])

        make_pipeline().walk_collection(playlist)

        tags = ID3(output_dir / "Road Trip" / "Queen - One.mp3")
        assert tags["TCON"].text == ["Road Trip"]
        assert tags.getall("COMM")[0].text[0] == "Collection: Road Trip, Genres: rock"

    def test_unknown_playlist(self, session, make_pipeline):
        """Test a playlist that cannot be fetched is one failed outcome"""
        outcomes = make_pipeline().walk_collection(
            CatalogIdentifier(IdentifierKind.COLLECTION, PLAYLIST)
        )
        assert len(outcomes) == 1
        assert outcomes[0].status is TrackStatus.FAILED


class TestRun:
    """Test whole batches"""

    def test_stats(self, session, output_dir, make_pipeline):
        """Test mixed input is counted per track"""
        session.add_track(TRACK_A, "One")
        session.add_track(TRACK_B, "Two", formats=())
        session.add_track(TRACK_C, "Three")
        session.add_track(TRACK_D, "Four")
        playlist = session.add_collection(PLAYLIST, "Mix", [TRACK_C, TRACK_D])
        (output_dir / "Queen - One.mp3").write_bytes(b"done")

        stats = make_pipeline().run([track_id(TRACK_A), track_id(TRACK_B), playlist])

        assert stats.total == 4
        assert stats.skipped == 1
        assert stats.failed == 1
        assert stats.downloaded == 2

    def test_same_track_twice_in_one_run(self, session, make_pipeline, fake_transcoder):
        """Test a repeated line is skipped the second time"""
        session.add_track(TRACK_A, "One")

        stats = make_pipeline().run([track_id(TRACK_A), track_id(TRACK_A)])

        assert stats.downloaded == 1
        assert stats.skipped == 1
        assert len(fake_transcoder.calls) == 1


class TestBatchStats:
    """Test outcome counters"""

    def test_summary(self):
        stats = BatchStats()
        identifier = track_id(TRACK_A)
        stats.record(TrackOutcome(identifier, TrackStatus.DOWNLOADED))
        stats.record(TrackOutcome(identifier, TrackStatus.DOWNLOADED, tags_written=False))
        stats.record(TrackOutcome(identifier, TrackStatus.SKIPPED))
        stats.record(TrackOutcome(identifier, TrackStatus.FAILED))

        assert stats.summary() == "4 tracks: 2 downloaded, 1 skipped, 1 failed, 1 without tags"
