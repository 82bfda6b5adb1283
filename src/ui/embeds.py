import discord

from src.models.track import Playlist, Track

APPLE_MUSIC_RED = discord.Color.from_rgb(250, 36, 60)


def now_playing_embed(track: Track) -> discord.Embed:
    """Create an embed for the currently playing track."""
    embed = discord.Embed(
        title="Now Playing",
        description=f"**[{track.title}]({track.url})**",
        color=APPLE_MUSIC_RED,
    )
    embed.add_field(name="Artist", value=track.author, inline=True)
    embed.add_field(name="Duration", value=track.duration, inline=True)
    if track.playlist:
        embed.add_field(name="From", value=track.playlist.title, inline=True)

    embed.set_thumbnail(url=track.thumbnail)

    bridge = track.metadata.get("bridge")
    if bridge is not None:
        embed.add_field(
            name="Links",
            value=f"[Apple Music]({track.url}) | [YouTube]({bridge.video_url})",
            inline=False,
        )

    if track.requested_by:
        embed.set_footer(text=f"Requested by {track.requested_by}")
    return embed


def added_to_queue_embed(track: Track, position: int) -> discord.Embed:
    embed = discord.Embed(
        title="Added to Queue",
        description=f"**{track.title}** by {track.author}",
        color=discord.Color.blue(),
    )
    embed.add_field(name="Position", value=str(position + 1), inline=True)
    embed.add_field(name="Duration", value=track.duration, inline=True)
    embed.set_thumbnail(url=track.thumbnail)

    if track.requested_by:
        embed.set_footer(text=f"Requested by {track.requested_by}")
    return embed


def playlist_added_embed(playlist: Playlist) -> discord.Embed:
    """Embed for an album or playlist added to the queue."""
    tracks = playlist.tracks
    embed = discord.Embed(
        title="Album Loaded" if playlist.type == "album" else "Playlist Loaded",
        description=f"**{playlist.title}**\n{len(tracks)} tracks added to queue",
        color=discord.Color.blue(),
        url=playlist.url or None,
    )
    if playlist.author.name:
        embed.add_field(name="By", value=playlist.author.name[:1024], inline=True)

    minutes = sum(t.duration_ms for t in tracks) // 60000
    embed.add_field(name="Duration", value=f"{minutes}m", inline=True)

    if tracks:
        preview = "\n".join(f"`{i + 1}.` {t.title}" for i, t in enumerate(tracks[:5]))
        if len(tracks) > 5:
            preview += f"\n*...and {len(tracks) - 5} more*"
        embed.add_field(name="Tracks", value=preview, inline=False)

    embed.set_thumbnail(url=playlist.thumbnail)
    return embed


def queue_embed(tracks: list[Track], current: Track | None) -> discord.Embed:
    """Create an embed showing the current queue."""
    embed = discord.Embed(title="Music Queue", color=discord.Color.purple())

    if current:
        embed.add_field(
            name="Now Playing",
            value=f"**{current.title}** by {current.author} [{current.duration}]",
            inline=False,
        )

    if tracks:
        queue_text = "\n".join(
            f"`{i + 1}.` **{t.title}** by {t.author} [{t.duration}]"
            for i, t in enumerate(tracks[:10])  # Show max 10 tracks
        )
        if len(tracks) > 10:
            queue_text += f"\n\n*...and {len(tracks) - 10} more*"
        embed.add_field(name="Up Next", value=queue_text, inline=False)
    elif not current:
        embed.description = "The queue is empty."

    total_tracks = len(tracks) + (1 if current else 0)
    embed.set_footer(text=f"{total_tracks} track(s) in queue")
    return embed


def error_embed(message: str) -> discord.Embed:
    return discord.Embed(title="Error", description=message, color=discord.Color.red())
