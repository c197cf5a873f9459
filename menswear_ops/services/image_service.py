from __future__ import annotations

import base64
import logging
from dataclasses import dataclass

from menswear_ops.config import settings
from menswear_ops.models import ProductImage
from menswear_ops.services.function_client import FunctionClient, FunctionName
from menswear_ops.services.repository import InventoryRepository, NotFoundError
from menswear_ops.services.storage_paths import StoragePath

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = frozenset({'image/jpeg', 'image/jpg', 'image/png', 'image/webp'})
IMAGE_TYPES = frozenset({'primary', 'gallery'})


@dataclass(frozen=True)
class ImageView:
    id: int
    product_id: int
    storage_path: str
    public_url: str
    image_type: str
    alt_text: str | None
    position: int


def _view(row: ProductImage) -> ImageView:
    return ImageView(
        id=row.id,
        product_id=row.product_id,
        storage_path=row.storage_path,
        public_url=StoragePath(row.storage_path).public_url(),
        image_type=row.image_type,
        alt_text=row.alt_text,
        position=row.position,
    )


def list_product_images(repo: InventoryRepository, *, product_id: int) -> list[ImageView]:
    return [_view(row) for row in repo.list_images(product_id=product_id)]


def upload_product_image(
    client: FunctionClient,
    repo: InventoryRepository,
    *,
    product_id: int,
    file_name: str,
    content_type: str,
    content: bytes,
    image_type: str = 'gallery',
    alt_text: str | None = None,
) -> ImageView:
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValueError('Invalid file type. Please upload JPG, PNG, or WebP images.')
    if len(content) > settings.max_image_bytes:
        raise ValueError(f'File size too large. Images must be {settings.max_image_bytes} bytes or smaller.')
    if not content:
        raise ValueError('Image file is empty')
    if image_type not in IMAGE_TYPES:
        raise ValueError(f'Unknown image type: {image_type}')
    if not file_name or not file_name.strip():
        raise ValueError('File name is required')
    if repo.get_product(product_id) is None:
        raise NotFoundError(f'Product {product_id} not found')

    encoded = base64.b64encode(content).decode('ascii')
    data = client.invoke(
        FunctionName.IMAGE_UPLOAD,
        {
            'imageData': f'data:{content_type};base64,{encoded}',
            'fileName': file_name.strip(),
            'productId': product_id,
            'imageType': image_type,
        },
    ).unwrap()

    # Only the canonical relative key is persisted; URLs are derived on read.
    path = StoragePath.parse((data or {}).get('filePath') or (data or {}).get('publicUrl'))
    position = len(repo.list_images(product_id=product_id))
    row = repo.add(
        ProductImage(
            product_id=product_id,
            storage_path=path.value,
            image_type=image_type,
            alt_text=alt_text,
            position=position,
        )
    )
    repo.commit()
    logger.info('Stored image %s for product %s at %s', row.id, product_id, path.value)
    return _view(row)


def delete_product_image(client: FunctionClient, repo: InventoryRepository, *, image_id: int) -> None:
    row = repo.get_image(image_id)
    if row is None:
        raise NotFoundError(f'Image {image_id} not found')
    client.invoke(
        FunctionName.IMAGE_DELETE,
        {
            'imageId': image_id,
            'imageUrl': StoragePath(row.storage_path).public_url(),
            'productId': row.product_id,
        },
    ).unwrap()
    repo.delete(row)
    repo.commit()
    logger.info('Deleted image %s for product %s', image_id, row.product_id)
