"""
Recombine - live recombination of song regions from a grid controller.

A song is a set of tracks laid out along a timeline of slots.  Recombine
shows that song on an 8x8 grid (tracks across, slots down) and lets a
performer pick, per track, which slot should be playing.  The picks are
copied into one looping region at the end of the timeline, so tracks from
different parts of the song play together.

What it does:

- **Track and whole-region copies.** Tap a cell to play that track from
  that slot; hold it to bring in the whole slot.  Press again to switch
  it off.
- **Polyrhythms.** Tracks of different lengths are tiled out to their
  least common multiple, so a 12-line bass loop against a 16-line drum
  loop keeps cycling against each other instead of being cut short.
- **Keeps the beat.** When the loop gets shorter under the playhead,
  playback keeps its distance to the loop end.
- **Non-destructive.** Mute flags are remembered when the engine starts
  and handed back when it stops.
- **Surfaces.** A Launchpad-style MIDI grid (mido) and an OSC interface
  (python-osc) drive the same engine.

Package layout:

- ``recombine.engine`` - the engine: lifecycle, toggling and the idle loop.
- ``recombine.host`` - what a song/sequencer must provide.
- ``recombine.song`` - an in-memory host, used by the demo and tests.
- ``recombine.viewport``, ``recombine.slots``, ``recombine.polyrhythm``,
  ``recombine.region`` - the engine's collaborators.
- ``recombine.controller``, ``recombine.osc``, ``recombine.runner`` -
  surfaces and the asyncio tick driver.

Package-level exports: ``Engine``, ``EngineState``, ``FollowMode``, ``Options``, ``Song``, ``demo_song``.
"""

import recombine.config
import recombine.engine
import recombine.song


Engine = recombine.engine.Engine
EngineState = recombine.engine.EngineState
FollowMode = recombine.config.FollowMode
Options = recombine.config.Options
Song = recombine.song.Song
demo_song = recombine.song.demo_song
