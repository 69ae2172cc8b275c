"""
Signaling Gateway.

WebSocket relay for WebRTC signaling: peers join a numeric channel, learn
their own id and the ids of the other peers, and exchange offers, answers
and ICE candidates addressed to one another.
"""
