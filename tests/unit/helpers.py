"""Request helpers shared by the API tests."""
import io

from werkzeug.datastructures import FileStorage


def text_file(name: str, content: str) -> FileStorage:
    return FileStorage(
        stream=io.BytesIO(content.encode("utf-8")),
        filename=name,
        content_type="text/plain",
    )


async def upload_text(client, name: str, content: str):
    return await client.post("/upload", files={"files": text_file(name, content)})
