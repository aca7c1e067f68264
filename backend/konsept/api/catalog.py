from flask import Blueprint, jsonify

from konsept.models import Concept


catalog = Blueprint('catalog', __name__)


@catalog.route('/concepts', methods=['GET'])
def list_concepts():
    concepts = Concept.query.filter_by(active=True).order_by(Concept.id).all()
    return jsonify([c.to_dict() for c in concepts])
