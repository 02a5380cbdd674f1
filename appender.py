from PIL import Image


def stack_images(image_paths):
    """
    Appends images vertically into one image with Pillow (width x sum of heights).

    Used as the pixel-level reference for checking a chunk-level concatenation.
    """
    images = []
    try:
        for path in image_paths:
            img = Image.open(path)
            img.load()
            images.append(img)

        if not images:
            raise ValueError("no images to append")

        # Check all images share the first one's width and mode
        width = images[0].width
        mode = images[0].mode
        for idx, img in enumerate(images):
            if img.width != width:
                raise ValueError(f"Image {image_paths[idx]} is {img.width} pixels wide, expected {width}")
            if img.mode != mode:
                raise ValueError(f"Image {image_paths[idx]} has mode {img.mode}, expected {mode}")

        total_height = sum(img.height for img in images)

        # Create new blank image
        result = Image.new(mode, (width, total_height))
        if mode == 'P':
            result.putpalette(images[0].getpalette())

        # Paste each image one below the other
        y = 0
        for img in images:
            result.paste(img, (0, y))
            y += img.height

        return result
    finally:
        for img in images:
            img.close()
