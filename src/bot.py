import logging

import discord
from discord import app_commands

from src.clients.apple_music import AppleMusicClient
from src.clients.apple_music_helpers import QueryType, classify_query
from src.clients.page_fetcher import PageFetcher
from src.config import Settings, load_settings
from src.models.track import ExtractorInfo, SearchContext
from src.music.player import PlayerManager
from src.music.queue import QueueManager
from src.resolver import AppleMusicExtractor
from src.ui.embeds import (
    added_to_queue_embed,
    error_embed,
    now_playing_embed,
    playlist_added_embed,
    queue_embed,
)

logger = logging.getLogger(__name__)


class MusicBot(discord.Client):
    def __init__(self, settings: Settings):
        intents = discord.Intents.default()
        intents.voice_states = True
        super().__init__(intents=intents)

        self.settings = settings
        self.tree = app_commands.CommandTree(self)

        client = AppleMusicClient(
            fetcher=PageFetcher(timeout=settings.request_timeout),
            storefront=settings.storefront,
        )
        self.extractor = AppleMusicExtractor(client=client)

        self.queues = QueueManager()
        self.players = PlayerManager(self.extractor)

    async def setup_hook(self):
        await self.extractor.activate()
        register_commands(self)

        # Guild-specific sync is instant; global sync can take up to an hour
        if self.settings.test_guild_id:
            guild = discord.Object(id=self.settings.test_guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
        else:
            await self.tree.sync()

    async def close(self):
        await self.extractor.deactivate()
        await super().close()

    async def on_ready(self):
        logger.info("Logged in as %s (ID: %s)", self.user, self.user.id)


async def ensure_voice(interaction: discord.Interaction) -> discord.VoiceClient | None:
    """Ensure the bot is in the user's voice channel. Returns VoiceClient or None."""
    if not interaction.user.voice or not interaction.user.voice.channel:
        await interaction.response.send_message(
            embed=error_embed("You must be in a voice channel."),
            ephemeral=True,
        )
        return None

    user_channel = interaction.user.voice.channel
    voice_client = interaction.guild.voice_client

    if voice_client is None:
        voice_client = await user_channel.connect()
    elif voice_client.channel != user_channel:
        await voice_client.move_to(user_channel)

    return voice_client


def register_commands(bot: MusicBot) -> None:
    tree = bot.tree

    @tree.command(name="play", description="Play a song, album or playlist from Apple Music")
    @app_commands.describe(query="Song name or Apple Music link")
    async def play(interaction: discord.Interaction, query: str):
        if not await bot.extractor.validate(query):
            await interaction.response.send_message(
                embed=error_embed("That link is not an Apple Music song, album or playlist."),
                ephemeral=True,
            )
            return

        voice_client = await ensure_voice(interaction)
        if not voice_client:
            return

        await interaction.response.defer()

        requester = interaction.user.display_name
        info = await bot.extractor.handle(query, SearchContext(requested_by=requester))
        if info.is_empty:
            await interaction.followup.send(embed=error_embed("Could not find that on Apple Music."))
            return

        # Only the best search hit is queued
        if classify_query(query) is QueryType.SEARCH:
            info = ExtractorInfo(tracks=info.tracks[:1])

        guild_id = interaction.guild_id
        queue = bot.queues.get(guild_id)
        position = queue.add_info(info, requested_by=requester)

        player = bot.players.get(guild_id)
        if not player:
            channel = interaction.channel

            def on_track_error(track, error):
                bot.loop.create_task(
                    channel.send(embed=error_embed(f"Skipped **{track.title}**: {error}"))
                )

            def on_disconnect():
                bot.players.remove(guild_id)
                bot.queues.remove(guild_id)

            player = bot.players.create(
                guild_id,
                voice_client,
                queue,
                on_track_error=on_track_error,
                on_disconnect=on_disconnect,
            )

        if info.playlist:
            await interaction.followup.send(embed=playlist_added_embed(info.playlist))
            if not player.is_playing():
                await player.play_next()
            return

        if player.is_playing():
            await interaction.followup.send(embed=added_to_queue_embed(info.tracks[0], position))
            return

        played = await player.play_next()
        if played:
            await interaction.followup.send(embed=now_playing_embed(played))
        else:
            await interaction.followup.send(embed=error_embed("Failed to play track."))

    @tree.command(name="skip", description="Skip the current song")
    async def skip(interaction: discord.Interaction):
        player = bot.players.get(interaction.guild_id)
        if not player or not player.is_playing():
            await interaction.response.send_message(embed=error_embed("Nothing is playing."), ephemeral=True)
            return

        current = bot.queues.get(interaction.guild_id).current
        player.skip()
        await interaction.response.send_message(
            f"Skipped **{current.title}** by {current.author}" if current else "Skipped."
        )

    @tree.command(name="stop", description="Stop playback and clear the queue")
    async def stop(interaction: discord.Interaction):
        player = bot.players.get(interaction.guild_id)
        if not player:
            await interaction.response.send_message(embed=error_embed("Nothing is playing."), ephemeral=True)
            return

        await player.stop()
        bot.players.remove(interaction.guild_id)
        bot.queues.remove(interaction.guild_id)
        await interaction.response.send_message("Stopped playback and cleared the queue.")

    @tree.command(name="pause", description="Pause playback")
    async def pause(interaction: discord.Interaction):
        player = bot.players.get(interaction.guild_id)
        if player and player.pause():
            await interaction.response.send_message("Paused.")
        else:
            await interaction.response.send_message(embed=error_embed("Nothing is playing."), ephemeral=True)

    @tree.command(name="resume", description="Resume playback")
    async def resume(interaction: discord.Interaction):
        player = bot.players.get(interaction.guild_id)
        if player and player.resume():
            await interaction.response.send_message("Resumed.")
        else:
            await interaction.response.send_message(embed=error_embed("Nothing is paused."), ephemeral=True)

    @tree.command(name="queue", description="Show the current queue")
    async def show_queue(interaction: discord.Interaction):
        queue = bot.queues.get(interaction.guild_id)
        await interaction.response.send_message(embed=queue_embed(queue.get_list(), queue.current))

    @tree.command(name="clear", description="Clear the queue (keeps current song playing)")
    async def clear(interaction: discord.Interaction):
        bot.queues.get(interaction.guild_id).clear()
        await interaction.response.send_message("Queue cleared.")

    @tree.command(name="shuffle", description="Toggle shuffle mode")
    @app_commands.describe(enabled="Turn shuffle on or off")
    async def shuffle(interaction: discord.Interaction, enabled: bool):
        bot.queues.get(interaction.guild_id).shuffle = enabled
        await interaction.response.send_message(f"Shuffle {'enabled' if enabled else 'disabled'}.")


def main():
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if not settings.discord_token:
        raise ValueError("DISCORD_TOKEN environment variable is not set")

    MusicBot(settings).run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
