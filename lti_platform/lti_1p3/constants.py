"""
LTI 1.3 Constants definition file

This includes the claim names, the role vocabulary and the mapping of
LTI 1.0 message parameters onto LTI 1.3 claims.
"""
from enum import Enum

LTI_1P3_VERSION = '1.3.0'

CLAIM_PREFIX = 'https://purl.imsglobal.org/spec/lti/claim/'
DL_CLAIM_PREFIX = 'https://purl.imsglobal.org/spec/lti-dl/claim/'

MESSAGE_TYPE_CLAIM = CLAIM_PREFIX + 'message_type'
VERSION_CLAIM = CLAIM_PREFIX + 'version'
DEPLOYMENT_ID_CLAIM = CLAIM_PREFIX + 'deployment_id'
TARGET_LINK_URI_CLAIM = CLAIM_PREFIX + 'target_link_uri'
ROLES_CLAIM = CLAIM_PREFIX + 'roles'
CUSTOM_CLAIM = CLAIM_PREFIX + 'custom'
EXT_CLAIM = CLAIM_PREFIX + 'ext'
DEEP_LINKING_SETTINGS_CLAIM = DL_CLAIM_PREFIX + 'deep_linking_settings'
CONTENT_ITEMS_CLAIM = DL_CLAIM_PREFIX + 'content_items'
DL_DATA_CLAIM = DL_CLAIM_PREFIX + 'data'

LTI_RESOURCE_LINK_REQUEST = 'LtiResourceLinkRequest'
LTI_DEEP_LINKING_REQUEST = 'LtiDeepLinkingRequest'
LTI_DEEP_LINKING_RESPONSE = 'LtiDeepLinkingResponse'

# LTI 1.0 message types and their LTI 1.3 equivalent
MESSAGE_TYPE_MAP = {
    'basic-lti-launch-request': LTI_RESOURCE_LINK_REQUEST,
    'ContentItemSelectionRequest': LTI_DEEP_LINKING_REQUEST,
}

# Context membership roles
# https://www.imsglobal.org/spec/lti/v1p3/#lis-vocabulary-for-context-roles
LTI_1P3_CONTEXT_ROLE_MAP = {
    'administrator': 'http://purl.imsglobal.org/vocab/lis/v2/membership#Administrator',
    'contentdeveloper': 'http://purl.imsglobal.org/vocab/lis/v2/membership#ContentDeveloper',
    'instructor': 'http://purl.imsglobal.org/vocab/lis/v2/membership#Instructor',
    'learner': 'http://purl.imsglobal.org/vocab/lis/v2/membership#Learner',
    'mentor': 'http://purl.imsglobal.org/vocab/lis/v2/membership#Mentor',
    'manager': 'http://purl.imsglobal.org/vocab/lis/v2/membership#Manager',
    'member': 'http://purl.imsglobal.org/vocab/lis/v2/membership#Member',
    'officer': 'http://purl.imsglobal.org/vocab/lis/v2/membership#Officer',
    'teachingassistant': 'http://purl.imsglobal.org/vocab/lis/v2/membership/Instructor#TeachingAssistant',
}


class LTI_1P3_CONTEXT_TYPE(Enum):  # pylint: disable=invalid-name
    """ LTI 1.3 Context Claim Types """
    group = 'http://purl.imsglobal.org/vocab/lis/v2/course#CourseGroup'
    course_offering = 'http://purl.imsglobal.org/vocab/lis/v2/course#CourseOffering'
    course_section = 'http://purl.imsglobal.org/vocab/lis/v2/course#CourseSection'
    course_template = 'http://purl.imsglobal.org/vocab/lis/v2/course#CourseTemplate'


# LTI 1.0 context types and their LTI 1.3 equivalent
CONTEXT_TYPE_MAP = {
    'CourseGroup': LTI_1P3_CONTEXT_TYPE.group.value,
    'CourseOffering': LTI_1P3_CONTEXT_TYPE.course_offering.value,
    'CourseSection': LTI_1P3_CONTEXT_TYPE.course_section.value,
    'CourseTemplate': LTI_1P3_CONTEXT_TYPE.course_template.value,
}

# LTI 1.0 message parameters carried in LTI 1.3 claims: parameter -> (claim, key within the claim).
# A claim of None means a top level claim.
PARAMETER_CLAIM_MAP = {
    'context_id': (CLAIM_PREFIX + 'context', 'id'),
    'context_type': (CLAIM_PREFIX + 'context', 'type'),
    'context_title': (CLAIM_PREFIX + 'context', 'title'),
    'context_label': (CLAIM_PREFIX + 'context', 'label'),
    'resource_link_id': (CLAIM_PREFIX + 'resource_link', 'id'),
    'resource_link_title': (CLAIM_PREFIX + 'resource_link', 'title'),
    'resource_link_description': (CLAIM_PREFIX + 'resource_link', 'description'),
    'launch_presentation_document_target': (CLAIM_PREFIX + 'launch_presentation', 'document_target'),
    'launch_presentation_width': (CLAIM_PREFIX + 'launch_presentation', 'width'),
    'launch_presentation_height': (CLAIM_PREFIX + 'launch_presentation', 'height'),
    'launch_presentation_return_url': (CLAIM_PREFIX + 'launch_presentation', 'return_url'),
    'launch_presentation_locale': (CLAIM_PREFIX + 'launch_presentation', 'locale'),
    'tool_consumer_info_product_family_code': (CLAIM_PREFIX + 'tool_platform', 'product_family_code'),
    'tool_consumer_info_version': (CLAIM_PREFIX + 'tool_platform', 'version'),
    'tool_consumer_instance_guid': (CLAIM_PREFIX + 'tool_platform', 'guid'),
    'tool_consumer_instance_name': (CLAIM_PREFIX + 'tool_platform', 'name'),
    'tool_consumer_instance_description': (CLAIM_PREFIX + 'tool_platform', 'description'),
    'tool_consumer_instance_url': (CLAIM_PREFIX + 'tool_platform', 'url'),
    'tool_consumer_instance_contact_email': (CLAIM_PREFIX + 'tool_platform', 'contact_email'),
    'user_id': (None, 'sub'),
    'lis_person_name_full': (None, 'name'),
    'lis_person_name_given': (None, 'given_name'),
    'lis_person_name_family': (None, 'family_name'),
    'lis_person_contact_email_primary': (None, 'email'),
    'ext_username': (None, 'preferred_username'),
    'accept_types': (DEEP_LINKING_SETTINGS_CLAIM, 'accept_types'),
    'accept_media_types': (DEEP_LINKING_SETTINGS_CLAIM, 'accept_media_types'),
    'accept_presentation_document_targets': (DEEP_LINKING_SETTINGS_CLAIM, 'accept_presentation_document_targets'),
    'accept_multiple': (DEEP_LINKING_SETTINGS_CLAIM, 'accept_multiple'),
    'accept_unsigned': (DEEP_LINKING_SETTINGS_CLAIM, 'accept_unsigned'),
    'auto_create': (DEEP_LINKING_SETTINGS_CLAIM, 'auto_create'),
    'content_item_return_url': (DEEP_LINKING_SETTINGS_CLAIM, 'deep_link_return_url'),
    'data': (DEEP_LINKING_SETTINGS_CLAIM, 'data'),
    'title': (DEEP_LINKING_SETTINGS_CLAIM, 'title'),
    'text': (DEEP_LINKING_SETTINGS_CLAIM, 'text'),
}

# Claim values sent as JSON booleans or lists rather than strings
BOOLEAN_CLAIM_KEYS = {'accept_multiple', 'accept_unsigned', 'auto_create'}
LIST_CLAIM_KEYS = {'accept_types', 'accept_media_types', 'accept_presentation_document_targets'}

# LTI 1.0 content-item media types and the LTI 1.3 content item types they correspond to
MEDIA_TYPE_CONTENT_TYPES = {
    'application/vnd.ims.lti.v1.ltilink': 'ltiResourceLink',
}

LTI_DEEP_LINKING_TARGETS = ['iframe', 'window', 'embed']

LTI_DEEP_LINKING_ACCEPTED_TYPES = [
    'ltiResourceLink',
]

# Lifetime in seconds of the id_token sent to the tool
ID_TOKEN_EXPIRATION = 60
