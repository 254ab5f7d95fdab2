"""
Read service - Serves derivatives and listings straight from the object store.

Routes:
    GET /s3/get/<key>       object bytes with Content-Type and Content-Length
    GET /s3/list/<prefix>   {"status": ..., "data": [object keys]}
    GET /s3/index/<prefix>  {"status": ..., "data": [common prefixes]}
"""

import json
import logging
from typing import Iterator, List, Optional

from bottle import Bottle, HTTPResponse, response
from botocore.exceptions import BotoCoreError, ClientError

from .s3_client import S3Client, is_not_found


STATUS_OK = '200 OK'
STATUS_ERROR = '500 Internal Server Error'
STREAM_CHUNK_SIZE = 1024 * 1024

logger = logging.getLogger(__name__)


def envelope(data: List[str], error: Optional[Exception] = None) -> str:
    """JSON body shared by the listing routes."""
    status = STATUS_OK if error is None else f"{STATUS_ERROR} ({error})"
    return json.dumps({'status': status, 'data': data})


def stream(body, chunk_size: int = STREAM_CHUNK_SIZE) -> Iterator[bytes]:
    """Iterate a botocore StreamingBody by chunk, closing it at the end."""
    try:
        for chunk in iter(lambda: body.read(chunk_size), b''):
            yield chunk
    finally:
        body.close()


def create_app(client: S3Client) -> Bottle:
    """
    Build the read service around an S3 client.

    Args:
        client: Client for the bucket derivatives were exported to
    """
    app = Bottle()

    @app.route('/s3/get/<key:path>')
    def s3_get(key):
        try:
            obj = client.get_object(key)
        except ClientError as e:
            if is_not_found(e):
                logger.debug(f"Object {key} not found")
                return HTTPResponse(status=404, body=b'')
            logger.error(f"Failed to get object {key}: {e}")
            return HTTPResponse(status=500, body=b'')
        except BotoCoreError as e:
            logger.error(f"Failed to get object {key}: {e}")
            return HTTPResponse(status=500, body=b'')

        r = HTTPResponse(body=stream(obj['Body']))
        r.set_header('Content-Type', obj.get('ContentType', 'application/octet-stream'))
        if 'ContentLength' in obj:
            r.set_header('Content-Length', str(obj['ContentLength']))
        return r

    @app.route('/s3/list/<prefix:path>')
    def s3_list(prefix):
        response.content_type = 'application/json'
        try:
            return envelope(client.list_keys(f"{prefix.rstrip('/')}/"))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to list objects under {prefix}: {e}")
            response.status = 500
            return envelope([], e)

    @app.route('/s3/index/<prefix:path>')
    def s3_index(prefix):
        response.content_type = 'application/json'
        try:
            return envelope(client.list_prefixes(f"{prefix.rstrip('/')}/"))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to list prefixes under {prefix}: {e}")
            response.status = 500
            return envelope([], e)

    return app


def serve(app: Bottle, host: str, port: int, debug: bool = False) -> None:
    """Run the read service until interrupted."""
    from bottle import run

    logger.info(f"Listening on http://{host}:{port}...")
    run(app=app, host=host, port=port, debug=debug, quiet=not debug)
