"""
Services module for the relay's collaborators and the client side.

Key components:
- tenants: Resolves the connecting shop and decides whether it may connect.
- persistence: The conversation record sink (in-memory or Supabase).
- analytics: Keyword sentiment and topic classification of transcripts.
- store_client: Order lookups against the shop's Shopify Admin API.
- supabase_rest: Minimal PostgREST client shared by the Supabase services.
- audio_codec: PCM16 framing and MP3 playback queueing for clients.
- voice_client: WebSocket client for the relay protocol.
"""
