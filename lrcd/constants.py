# LRC line protocol constants (command words and response tokens)

DEFAULT_PORT = 8000

LINE_DELIMITER = b"\n"
WIRE_ENCODING = "utf-8"

# Client commands
C_NICK = "/nick"
C_JOIN = "/join"
C_LEAVE = "/leave"
C_BYE = "/bye"
C_PRIV = "/priv"

COMMANDS = frozenset({C_NICK, C_JOIN, C_LEAVE, C_BYE, C_PRIV})

# A doubled leading slash sends the rest of the line as literal chat text.
ESCAPE_PREFIX = "//"

# Server responses
R_OK = "OK"
R_ERROR = "ERROR"
R_MESSAGE = "MESSAGE"
R_PRIVATE = "PRIVATE"
R_NEWNICK = "NEWNICK"
R_JOINED = "JOINED"
R_LEFT = "LEFT"
R_BYE = "BYE"

RESPONSES = frozenset(
    {R_OK, R_ERROR, R_MESSAGE, R_PRIVATE, R_NEWNICK, R_JOINED, R_LEFT, R_BYE}
)
