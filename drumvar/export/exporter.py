import zipfile
import io
import json
from datetime import datetime
from typing import Optional

from drumvar.core.io import AudioIO
from drumvar.core.types import VariationSet
from drumvar.qc.qc import analyze


def variation_filename(slot: int) -> str:
    """1-based download name for a slot."""
    return f"drum-variation-{slot + 1}.wav"


class Exporter:
    @staticmethod
    def create_variation_zip(variations: VariationSet, seed: Optional[int] = None, name: str = "DrumVariations") -> bytes:
        """
        Pack a VariationSet as drum-variation-1.wav ... drum-variation-8.wav
        plus variations.json (slot names, content kind, balance, seed, QC status).
        """
        buffer = io.BytesIO()

        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as zip_file:
            slots = []
            for variation in variations:
                filename = variation_filename(variation.slot)
                zip_file.writestr(filename, AudioIO.to_bytes(variation.buffer))

                qc = analyze(variation.buffer, variations.is_loop)
                slots.append({
                    "slot": variation.slot,
                    "name": variation.name,
                    "file": filename,
                    "sample_rate": variation.buffer.sample_rate,
                    "num_samples": variation.buffer.length,
                    "qc_status": qc["status"],
                    "qc_failures": qc["failures"],
                    "qc_warnings": qc["warnings"],
                })

            # Metadata
            meta = {
                "pack_name": name,
                "created_at": datetime.now().isoformat(),
                "is_loop": variations.is_loop,
                "balance": variations.balance,
                "seed": seed,
                "slots": slots,
            }
            zip_file.writestr("variations.json", json.dumps(meta, indent=2))

        return buffer.getvalue()
