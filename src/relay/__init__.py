"""Call relay between Twilio Media Streams and an ElevenLabs conversational agent.

One `RelaySession` runs per active call and owns both websockets:
Twilio media stream <-> RelaySession <-> ElevenLabs conversation.
"""
