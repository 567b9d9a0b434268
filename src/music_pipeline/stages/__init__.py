"""Per-file pipeline stages.

Conversion pipeline order: backup -> inspect -> encode (primary, fallback) -> cleanup
Organizer pipeline order:  metadata -> organize

Stages:
    backup -- Move every valid (non-empty) pre-existing .opus output into a
              lazily created, timestamp-named backup directory so a run never
              overwrites a prior conversion. Zero-length outputs are treated as
              invalid and left for the encoder to overwrite.
    inspect -- Probe the first audio stream's bitrate for skip-eligible files
               (m4a; flac/wav/alac too with the extended policy), normalize it
               to kbps and skip files within 20kbps of the target. Unknown
               bitrate (0) never skips.
    encode -- One encoder invocation per file. Primary tier is opusenc for
              flac/wav sources, fallback tier is ffmpeg/libopus in VBR mode for
              everything else and for primary failures. Success needs exit
              status 0 and a non-empty output; partial outputs are deleted.
    metadata -- Artist/album lookup via two ffprobe queries (format tags, then
                stream tags), case-insensitive keys, Unknown fallbacks.
    organize -- Sanitized artist/album/filename target, same-location no-op,
                collision-safe naming, rename with copy+delete fallback.
    cleanup -- Remove the transient encoder diagnostics directory.
"""
