"""Wire protocol framing, client connections, TCP server and authentication."""