"""Realtime infrastructure (Socket.IO).

Holds the socket server and the publish helpers; the chat state machine it
drives lives in ``bulletin_board.chat``.
"""
