"""Music Pipeline -- batch-convert audio to Opus and organize a music collection.

Core modules:
    config               -- Pipeline configuration via pydantic-settings (.env + env vars).
                            CLI flags are passed as kwargs to PipelineConfig.
    cli                  -- Click entry points: audio-to-opus (convert) and
                            organize-music (organize).
    convert_orchestrator -- Conversion pipeline: discovery, backup, skip decision,
                            primary/fallback encode tiers on bounded worker pools.
    organize_runner      -- Organizer pipeline: tag lookup and artist/album placement.
    discovery            -- Depth-limited, order-stable file discovery.
    ffprobe              -- Bitrate and tag inspection via ffprobe subprocess. Every
                            call is bounded by a timeout.
    sanitize             -- Extension, bitrate and path-component string utilities.
    tools                -- Preflight check for required external binaries.

Subpackages:
    stages -- Per-file steps (backup, inspect, encode, metadata, organize, cleanup)
"""
