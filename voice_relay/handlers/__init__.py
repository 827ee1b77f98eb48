"""
Handlers module for the routes Twilio calls into.

Key components:
- twilio_routes: TwiML webhooks, outbound call placement, the gather-mode speech
  endpoint and the media stream WebSocket endpoints.
"""
