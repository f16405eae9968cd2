# wetalk

wetalk is a small chat server built on aiohttp. Clients connect over
WebSocket. Each message goes to the other members of a chat who are online
at that moment. Users, chats and chat participants are kept in MongoDB.

## Installation

```
pip install .
```

You need a running MongoDB server.

## Running

```
wetalk
```

Options:

- `--host HOST`: the interface to bind. By default the server binds all interfaces.
- `--port PORT`: the port to listen on. Default: `8080`.
- `--mongo-uri URI`: the MongoDB connection string. Default: `mongodb://localhost:27017`.
- `--database NAME`: the database to use. Default: `wetalk`.

On start the server pings MongoDB. If MongoDB cannot be reached within 10
seconds, the server fails.

## HTTP API

Every response body is JSON of the form `{"message": ..., "data": ...}`.

- `POST /chat` (or `POST /chat/`) creates a chat. The body is
  `{"name": "team", "userIds": ["<user id>", ...]}`.
  - There must be at least one user id, and every id must belong to an
    existing user.
  - On success the response is `200` and the data is `{"chatId": "<id>"}`.
  - A body that is not valid JSON of this shape gives `400` with
    `"invalid request body"`.
  - Any other failure gives `500` with `"internal server error"`.
- `GET /user/{id}/chat` lists chats as `{"id", "name"}` objects. The user is
  taken from the `id` query parameter, not from the path segment.

## WebSocket

To connect, open `/ws/{userId}`.

- The user must already exist. If the user is not found, the handshake is
  not performed.
- A request that is not a WebSocket handshake gets `400`.
- While the connection is open the user is marked online. When it closes,
  the user is marked offline again.
- The server pings each client about every 54 seconds.
- A message larger than 512 bytes ends the connection.

A client sends messages of this form:

```json
{"message": "hello", "chatId": "<chat id>", "timestamp": 1700000000}
```

The other participants of the chat who are online receive:

```json
{"chatId": "<sender id>", "userName": "<sender name>", "message": "hello", "timestamp": 1700000000}
```

In this reply the `chatId` field carries the sender's user id. If a chat has
no participants, it is deleted when a message is sent to it.

## Using it as a library

`wetalk.server.build_app(db)` takes a pymongo database and builds the aiohttp
application, with the hub started and stopped alongside the application.
The layers under it can also be used on their own:

- `wetalk.entities`: `Chat`, `ChatParticipant`, `User`, `UserIndexFilter`
- `wetalk.mongo`: `MongoStore.connect(uri, db_name)`. When its arguments are
  empty it reads `MONGODB_URI` and `MONGODB_DATABASE`.
- `wetalk.repositories`: `ChatRepository` and `UserRepository`. A missing
  document raises `NotFoundError`.
- `wetalk.usecases`: `ChatUsecase`, `UserUsecase` and `MessageUsecase`.
  Invalid chat input raises `InvalidChatError`.
- `wetalk.hub`: `Hub` and `UserClient`
- `wetalk.messages`: `IncomingMessage` and `OutgoingMessage`
- `wetalk.http_handler`: `HttpHandler` and `map_routes`
- `wetalk.ws_handler`: `WebsocketHandler`
- `wetalk.memcache`: `MemCache`, a thread-safe in-memory cache.
  - Entries can have optional TTLs.
  - `increment` and `decrement` work on integer values.
  - An optional background thread clears expired entries.

## What it does not do

- There is no endpoint for creating or listing users. Users must be put in
  the `users` collection by other means.
- Messages are not stored. A participant who is offline when a message is
  sent never receives it. The WebSocket handler only reports which
  participants were offline.
- `MessageUsecase.get_receivers` has no direct routes and returns an empty
  list.
- The server does not use `MemCache`.

## Tests

```
pip install ".[test]"
pytest
```