"""UDP broadcast networking: local address lookup, peer tracking and message exchange."""