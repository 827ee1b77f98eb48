"""
Services module for the external APIs the relay depends on.

Key components:
- signed_url: SignedUrlProvider, which obtains a one-time ElevenLabs conversation
  URL per call.
- twilio_calls: OutboundCallPlacer for the Twilio REST API and the TwiML builders
  used by the HTTP routes.
"""
