"""Chatify: chat relay server and conversation composer client."""
