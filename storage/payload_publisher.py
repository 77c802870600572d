"""Publisher for the static events.json payload."""
import logging
import os
from typing import List, Optional

import boto3
from botocore.exceptions import ClientError

from schedule.event_store import CACHE_CONTROL

logger = logging.getLogger(__name__)


class PayloadPublisher:
    """Writes the payload to a local directory and/or an S3 bucket."""
    
    PAYLOAD_KEY = "events.json"
    CONTENT_TYPE = "application/json"
    
    def __init__(self, bucket_name: Optional[str] = None, output_dir: Optional[str] = None):
        """
        Initialize the publisher.
        
        Args:
            bucket_name: S3 bucket serving the static site (optional)
            output_dir: Local build output directory (optional)
        """
        self.bucket_name = bucket_name
        self.output_dir = output_dir
        self.s3 = boto3.client('s3') if bucket_name else None
        logger.info(
            f"Initialized PayloadPublisher (bucket: {bucket_name}, "
            f"output_dir: {output_dir})"
        )
    
    def publish(self, payload: str) -> List[str]:
        """
        Publish the payload to every configured target.
        
        Args:
            payload: Serialized events.json content
            
        Returns:
            Locations the payload was written to
            
        Raises:
            ClientError: If the S3 upload fails
            OSError: If the local file cannot be written
        """
        targets = []
        
        if self.output_dir:
            targets.append(self._write_local(payload))
        
        if self.s3:
            targets.append(self._upload(payload))
        
        if not targets:
            logger.warning("No publish target configured, payload discarded")
        
        return targets
    
    def _write_local(self, payload: str) -> str:
        os.makedirs(self.output_dir, exist_ok=True)
        path = os.path.join(self.output_dir, self.PAYLOAD_KEY)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(payload)
        logger.info(f"Wrote payload to {path}")
        return path
    
    def _upload(self, payload: str) -> str:
        """
        Upload the payload to S3 with the cache directive.
        
        Args:
            payload: Serialized events.json content
            
        Returns:
            s3:// URI of the uploaded object
        """
        try:
            self.s3.put_object(
                Bucket=self.bucket_name,
                Key=self.PAYLOAD_KEY,
                Body=payload.encode('utf-8'),
                ContentType=self.CONTENT_TYPE,
                CacheControl=CACHE_CONTROL
            )
        except ClientError as e:
            logger.error(f"Error uploading payload to S3 bucket {self.bucket_name}: {e}")
            raise
        
        uri = f"s3://{self.bucket_name}/{self.PAYLOAD_KEY}"
        logger.info(f"Uploaded payload to {uri}")
        return uri
