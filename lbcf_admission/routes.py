import logging

from flask import Blueprint, jsonify, request

from .helpers import build_patches, make_admission_response
from .models import AdmissionReviewModel
from .mutate import PreconditionError

log = logging.getLogger("lbcf-admission")


def create_routes(settings, registry):
    bp = Blueprint("webhook", __name__)

    @bp.route("/health", methods=["GET"])
    def health():
        return {"status": "healthy"}, 200

    @bp.route("/mutate", methods=["POST"])
    def mutate():
        uid = ""
        try:
            review_json = request.get_json(silent=True)

            admission = AdmissionReviewModel.from_dict(review_json or {})
            if admission is None:
                log.warning("Invalid AdmissionReview payload for /mutate")
                return jsonify(make_admission_response(uid="", allowed=False)), 400

            req = admission.request
            uid = req.uid

            try:
                patches = build_patches(req, settings, registry)
            except PreconditionError as e:
                log.warning("Rejecting %s uid=%s: %s", req.kind, uid, e)
                return jsonify(make_admission_response(uid, False, message=str(e)))

            if patches:
                log.info(
                    "Patching %s uid=%s with %d operation(s)", req.kind, uid, len(patches)
                )
            else:
                log.info("No mutation needed for %s uid=%s", req.kind or "object", uid)

            return jsonify(make_admission_response(uid, True, patches))
        except Exception:
            log.error("Error in /mutate", exc_info=True)
            return jsonify(make_admission_response(uid=uid, allowed=True)), 500

    return bp
